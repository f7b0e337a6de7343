"""
Transactional email providers.

Each provider knows its send endpoint and how to shape the canonical
``OutgoingEmail`` into the JSON body its API expects. Exactly one provider is
active per process, chosen from ``MAILING_PROVIDER`` when the app starts.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class OutgoingEmail:
    to: str
    from_email: str
    from_name: str
    subject: str
    html_content: str
    text_content: Optional[str] = None


class MailProvider:
    name: str = ""
    endpoint: str = ""

    def build_request(self, message: OutgoingEmail) -> Dict[str, Any]:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<MailProvider {self.name} {self.endpoint}>"


class MailtrapProvider(MailProvider):
    name = "mailtrap"
    endpoint = "https://send.api.mailtrap.io/api/send"

    def build_request(self, message: OutgoingEmail) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "from": {"email": message.from_email, "name": message.from_name},
            "to": [{"email": message.to}],
            "subject": message.subject,
            "html": message.html_content,
        }
        if message.text_content:
            body["text"] = message.text_content
        return body


class SendgridProvider(MailProvider):
    name = "sendgrid"
    endpoint = "https://api.sendgrid.com/v3/mail/send"

    def build_request(self, message: OutgoingEmail) -> Dict[str, Any]:
        # SendGrid requires text/plain to precede text/html
        content = []
        if message.text_content:
            content.append({"type": "text/plain", "value": message.text_content})
        content.append({"type": "text/html", "value": message.html_content})
        return {
            "personalizations": [{"to": [{"email": message.to}]}],
            "from": {"email": message.from_email, "name": message.from_name},
            "subject": message.subject,
            "content": content,
        }


PROVIDERS = {
    MailtrapProvider.name: MailtrapProvider,
    SendgridProvider.name: SendgridProvider,
}


def get_provider(name: str) -> MailProvider:
    key = (name or "").strip().lower()
    try:
        return PROVIDERS[key]()
    except KeyError:
        raise RuntimeError(
            f"Unsupported MAILING_PROVIDER: {name!r} (expected one of: {', '.join(sorted(PROVIDERS))})"
        ) from None

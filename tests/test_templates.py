from reminder_mailer.services.email import render_reminder_html, render_reminder_text
from reminder_mailer.utils.helpers import format_timestamp, parse_timestamp


def test_reminder_html_is_deterministic():
    a = render_reminder_html("alice", "2024-01-15T10:30:00Z")
    b = render_reminder_html("alice", "2024-01-15T10:30:00Z")
    assert a == b
    assert "Hello alice" in a
    assert "Your last report was submitted on January 15, 2024 at 10:30 AM UTC." in a


def test_reminder_html_without_last_report_uses_fallback():
    html = render_reminder_html("bob")
    assert "We haven't received any reports from you yet." in html
    assert "Your last report was submitted" not in html
    assert render_reminder_html("bob", None) == html


def test_reminder_html_escapes_username():
    html = render_reminder_html("<b>eve</b>")
    assert "<b>eve</b>" not in html
    assert "&lt;b&gt;eve&lt;/b&gt;" in html


def test_reminder_text_mirrors_html_content():
    txt = render_reminder_text("carol", "2024-03-02T18:05:00+00:00")
    assert txt.startswith("Hello carol,")
    assert "March 2, 2024 at 06:05 PM UTC" in txt
    assert "<" not in txt


def test_format_timestamp_converts_offsets_to_utc():
    assert format_timestamp("2024-01-15T12:30:00+02:00") == "January 15, 2024 at 10:30 AM UTC"


def test_format_timestamp_keeps_unparseable_values():
    assert parse_timestamp("last tuesday") is None
    assert format_timestamp("last tuesday") == "last tuesday"

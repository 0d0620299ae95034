"""Admin web app: settings page and stored-feed actions.

The settings page answers three query parameters before rendering:

    download_feed_id=<id>  payload as an application/xml attachment
    view_feed_id=<id>      payload as application/xml, inline
    delete_feed_id=<id>    delete the record, redirect back to the page

Ids are parsed leniently (leading digits, else 0). An id with no record
falls through to the normal page.
"""

import re
from datetime import datetime
from html import escape
from typing import Optional
from urllib.parse import urlencode

from fastapi import FastAPI, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response
import structlog

from ..pipeline.monitor import FeedMonitor

logger = structlog.get_logger()

SETTINGS_PATH = "/"

_INT_PREFIX = re.compile(r"^\s*([+-]?\d+)")
INT_MAX = 2**63 - 1
INT_MIN = -2**63

HTML_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>RSS Feed Monitor</title>
    <style>
        body {{ font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", sans-serif; margin: 24px; color: #1d2327; }}
        table.widefat {{ border-collapse: collapse; width: 100%; }}
        table.widefat th, table.widefat td {{ border: 1px solid #c3c4c7; padding: 6px 10px; text-align: left; }}
        .form-table th {{ text-align: left; padding-right: 16px; }}
        .info-container {{ margin: 24px 0; }}
        .danger {{ color: #d63638; }}
    </style>
</head>
<body>
<div class="wrap">
{content}
</div>
</body>
</html>
"""

FREQUENCY_CHOICES = [("hourly", "Hourly"), ("daily", "Daily"), ("weekly", "Weekly")]
DELETE_EVERY_CHOICES = [("week", "Week"), ("month", "Month"), ("year", "Year")]


def intval(value: Optional[str]) -> int:
    """Parse an integer the way PHP's intval does: leading digits or 0.

    Out-of-range values saturate at the 64-bit limits.
    """
    if value is None:
        return 0
    match = _INT_PREFIX.match(value)
    if not match:
        return 0
    return max(INT_MIN, min(INT_MAX, int(match.group(1))))


def render(content: str) -> str:
    return HTML_TEMPLATE.format(content=content)


def action_url(**params) -> str:
    return f"{SETTINGS_PATH}?{urlencode(params)}"


def select_html(name: str, choices, selected: str) -> str:
    options = "".join(
        f"<option value='{value}'{' selected' if value == selected else ''}>{label}</option>"
        for value, label in choices
    )
    return f"<select name='{name}'>{options}</select>"


def format_timestamp(dt: Optional[datetime]) -> str:
    return dt.strftime('%Y-%m-%d %H:%M:%S') if dt else 'Not scheduled'


def saved_feeds_html(monitor: FeedMonitor) -> str:
    records = monitor.record_store.list_all()
    if not records:
        return '<p>No saved feeds found.</p>'

    rows = []
    for record in records:
        rows.append(f"""
            <tr>
                <td>{record.id}</td>
                <td>{escape(record.feed_url)}</td>
                <td>{format_timestamp(record.retrieved_at)}</td>
                <td>
                    <a href="{escape(action_url(download_feed_id=record.id))}">Download</a>
                    |
                    <a href="{escape(action_url(view_feed_id=record.id))}" target="_blank">View</a>
                    |
                    <a class="danger" href="{escape(action_url(delete_feed_id=record.id))}">Delete</a>
                </td>
            </tr>""")

    return f"""
        <table class="widefat fixed">
            <thead><tr><th>ID</th><th>Feed URL</th><th>Retrieved At</th><th>Actions</th></tr></thead>
            <tbody>{''.join(rows)}</tbody>
        </table>"""


def settings_page_html(monitor: FeedMonitor) -> str:
    config = monitor.config_store.get()

    if config.feed_url:
        feed_notice = ''
    else:
        feed_notice = "<p class='danger'>Add a feed to start monitoring.</p>"

    content = f"""
    <h1>RSS Feed Monitor</h1>
    <form method="post" action="{SETTINGS_PATH}">
        <h2>RSS Feed Monitor Settings</h2>
        <table class="form-table">
            <tr>
                <th>RSS Feed URL</th>
                <td><input type="text" name="rss_feed_url" value="{escape(config.feed_url)}" class="regular-text"></td>
            </tr>
            <tr>
                <th>Monitor Frequency</th>
                <td>{select_html('rss_feed_frequency', FREQUENCY_CHOICES, config.fetch_interval.value)}</td>
            </tr>
            <tr>
                <th>Delete Every</th>
                <td>{select_html('delete_every', DELETE_EVERY_CHOICES, config.retention_window.value)}</td>
            </tr>
        </table>
        <p><button type="submit">Save Changes</button></p>
    </form>
    <div class="info-container">
        <h2>Next Feed Fetch</h2>
        <p>Next fetch scheduled for: <strong>{format_timestamp(monitor.scheduler.next_run_at)}</strong></p>
        {feed_notice}
    </div>
    <h2>Saved RSS Feed Data</h2>
    {saved_feeds_html(monitor)}
    """
    return render(content)


def feed_payload_response(monitor: FeedMonitor, request: Request) -> Optional[Response]:
    """Serve a stored payload for download_feed_id / view_feed_id, if it exists."""
    params = request.query_params
    download = "download_feed_id" in params
    if not download and "view_feed_id" not in params:
        return None

    record_id = intval(params.get("download_feed_id") if download else params.get("view_feed_id"))
    record = monitor.record_store.get(record_id)
    if record is None:
        logger.debug("feed_record_not_found", id=record_id)
        return None

    headers = {}
    if download:
        headers["Content-Disposition"] = f'attachment; filename="rss_feed_{record.id}.xml"'
    return Response(content=record.feed_data, media_type="application/xml", headers=headers)


def create_app(monitor: FeedMonitor) -> FastAPI:
    """Build the admin app around an existing monitor."""
    app = FastAPI(title="RSS Feed Monitor")
    app.state.monitor = monitor

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", **monitor.status()}

    @app.get(SETTINGS_PATH)
    async def settings_page(request: Request):
        """Settings page, with the download/view/delete actions in front of it."""
        response = feed_payload_response(monitor, request)
        if response is not None:
            return response

        if "delete_feed_id" in request.query_params:
            monitor.record_store.delete(intval(request.query_params.get("delete_feed_id")))
            return RedirectResponse(url=SETTINGS_PATH, status_code=302)

        return HTMLResponse(settings_page_html(monitor))

    @app.post(SETTINGS_PATH)
    async def save_settings(
        rss_feed_url: str = Form(""),
        rss_feed_frequency: str = Form(""),
        delete_every: str = Form(""),
    ):
        """Store submitted settings."""
        await monitor.update_settings({
            "rss_feed_url": rss_feed_url,
            "rss_feed_frequency": rss_feed_frequency,
            "delete_every": delete_every,
        })
        return RedirectResponse(url=SETTINGS_PATH, status_code=303)

    return app

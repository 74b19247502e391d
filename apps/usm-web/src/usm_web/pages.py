from __future__ import annotations

import html

from usm_kit.clock import format_display_time, today_iso

from usm_core.models import AssetRegistration, Identity, RequestStatus, ServiceRequest
from usm_core.notifications import Notification, Severity
from usm_core.views import RecordViews

SERVICE_TYPES = (
    "Service A (Initial Consultation)",
    "Service B (Routine Maintenance)",
    "Service C (Component Replacement)",
    "Emergency Support",
)
ASSET_TYPES = (
    "Asset Type A (Large System)",
    "Asset Type B (Small Component)",
    "Asset Type C (Software License)",
    "Specialized Unit",
)
NAV_ITEMS = (
    ("/", "Service Request (Public)"),
    ("/portal", "Customer Asset Portal"),
    ("/admin", "Admin Panel"),
)
CONNECTING_MESSAGE = "Connecting to VMS Backend..."
NOT_CONNECTED_NOTE = "Connecting to service..."

_STATUS_CLASSES = {
    RequestStatus.NEW: "badge-new",
    RequestStatus.QUOTED: "badge-quoted",
    RequestStatus.COMPLETED: "badge-completed",
}

_STYLE = """
      body { font-family: sans-serif; max-width: 1000px; margin: 24px auto; padding: 0 12px; background: #f3f4f6; }
      nav { display: flex; gap: 8px; margin-bottom: 16px; }
      nav a { padding: 8px 12px; border-radius: 8px; background: #fff; color: #1f2937; text-decoration: none; }
      nav a.active { background: #2563eb; color: #fff; }
      section { background: #fff; border-radius: 12px; padding: 16px 20px; margin-bottom: 16px; }
      input, select, button, textarea { width: 100%; margin-top: 6px; padding: 8px; box-sizing: border-box; }
      button { cursor: pointer; }
      button:disabled { cursor: not-allowed; opacity: 0.5; }
      table { width: 100%; border-collapse: collapse; }
      th, td { text-align: left; padding: 8px; border-bottom: 1px solid #e5e7eb; font-size: 14px; }
      code { font-family: monospace; font-size: 12px; background: #f3f4f6; padding: 2px 4px; border-radius: 4px; }
      .muted { color: #6b7280; font-size: 13px; }
      .warn { color: #ef4444; font-size: 13px; text-align: center; }
      .badge { padding: 2px 10px; border-radius: 999px; font-size: 12px; font-weight: 600; }
      .badge-new { background: #dbeafe; color: #1d4ed8; }
      .badge-quoted { background: #fef9c3; color: #a16207; }
      .badge-completed { background: #dcfce7; color: #15803d; }
      .modal { position: fixed; inset: 0; background: rgba(17, 24, 39, 0.75); display: flex; align-items: center; justify-content: center; }
      .modal.hidden { display: none; }
      .modal-box { background: #fff; border-radius: 12px; padding: 20px; max-width: 360px; width: 100%; }
      .modal-box button { width: auto; float: right; }
"""

_SCRIPT = """
      function showModal(severity, message) {
        document.getElementById("modal-title").textContent = severity === "success" ? "Success!" : "Error";
        document.getElementById("modal-message").textContent = message;
        document.getElementById("modal").classList.remove("hidden");
      }
      async function closeModal() {
        document.getElementById("modal").classList.add("hidden");
        await fetch("/v1/notifications/current", { method: "DELETE" });
      }
      async function submitForm(event, path) {
        event.preventDefault();
        const form = event.target;
        const body = Object.fromEntries(new FormData(form).entries());
        let data = null;
        let ok = false;
        try {
          const res = await fetch(path, {
            method: "POST",
            headers: { "Content-Type": "application/json" },
            body: JSON.stringify(body),
          });
          data = await res.json();
          ok = res.ok && data && data.success;
        } catch (err) {
          data = null;
        }
        if (ok) {
          form.reset();
          showModal("success", data.meta.message);
        } else {
          showModal("error", data && data.error ? data.error.message : "Request failed.");
        }
      }
      const records = document.getElementById("records");
      if (records && window.EventSource) {
        const source = new EventSource("/v1/records/stream");
        source.onmessage = async () => {
          const res = await fetch(window.location.pathname + "?fragment=records");
          if (res.ok) records.innerHTML = await res.text();
        };
      }
"""


def esc(value: object) -> str:
    return html.escape(str(value), quote=True)


def status_badge(status: RequestStatus) -> str:
    css_class = _STATUS_CLASSES.get(status, "badge-new")
    return f'<span class="badge {css_class}">{esc(status.value)}</span>'


def render_notification(notification: Notification | None) -> str:
    hidden = "" if notification is not None else " hidden"
    title = ""
    message = ""
    if notification is not None:
        title = "Success!" if notification.severity is Severity.SUCCESS else "Error"
        message = notification.message
    return (
        f'<div id="modal" class="modal{hidden}"><div class="modal-box">'
        f'<h3 id="modal-title">{esc(title)}</h3>'
        f'<p id="modal-message" class="muted">{esc(message)}</p>'
        '<button type="button" onclick="closeModal()">Close</button>'
        "</div></div>"
    )


def render_identity_banner(identity: Identity | None) -> str:
    uid = identity.uid if identity is not None else "Loading..."
    return (
        "<section>"
        f"<p>Your Demo ID: <code>{esc(uid)}</code></p>"
        '<p class="muted">This ID is visible because the demo data is public.</p>'
        "</section>"
    )


def _render_layout(active: str, body: str, notification: Notification | None) -> str:
    links = []
    for path, label in NAV_ITEMS:
        css = ' class="active"' if path == active else ""
        links.append(f'<a href="{path}"{css}>{esc(label)}</a>')
    nav = "".join(links)
    return (
        "<!doctype html>\n"
        '<html lang="en">\n'
        "  <head>\n"
        '    <meta charset="UTF-8" />\n'
        '    <meta name="viewport" content="width=device-width, initial-scale=1.0" />\n'
        "    <title>Universal Service Management (VMS) Demo</title>\n"
        f"    <style>{_STYLE}    </style>\n"
        "  </head>\n"
        "  <body>\n"
        "    <h1>Universal Service Management (VMS) Demo</h1>\n"
        f"    <nav>{nav}</nav>\n"
        f"    {body}\n"
        f"    {render_notification(notification)}\n"
        f"    <script>{_SCRIPT}    </script>\n"
        "  </body>\n"
        "</html>\n"
    )


def render_connecting_page(active: str) -> str:
    body = (
        f'<section><p class="muted">{esc(CONNECTING_MESSAGE)}</p></section>'
        "<script>setTimeout(() => window.location.reload(), 1000);</script>"
    )
    return _render_layout(active, body, None)


def _submit_button(label: str, identity: Identity | None) -> str:
    if identity is None:
        return f'<button type="submit" disabled>{esc(label)}</button><p class="warn">{esc(NOT_CONNECTED_NOTE)}</p>'
    return f'<button type="submit">{esc(label)}</button>'


def _options(values: tuple[str, ...]) -> str:
    return "".join(f'<option value="{esc(value)}">{esc(value)}</option>' for value in values)


def render_service_request_page(identity: Identity | None, notification: Notification | None) -> str:
    body = (
        "<section>"
        "<h2>Submit Service Request</h2>"
        '<form onsubmit="submitForm(event, \'/v1/service-requests\')">'
        '<label for="client_name">Client Name</label>'
        '<input id="client_name" name="client_name" placeholder="John Smith" required />'
        '<label for="email">Email</label>'
        '<input id="email" name="email" type="email" placeholder="john@example.com" required />'
        '<label for="service_type">Service Type</label>'
        f'<select id="service_type" name="service_type">{_options(SERVICE_TYPES)}</select>'
        '<label for="description">Problem / Request Description</label>'
        '<textarea id="description" name="description" rows="4" '
        'placeholder="Describe the issue or service needed in detail..." required></textarea>'
        f"{_submit_button('Submit Request', identity)}"
        "</form>"
        "</section>"
    )
    return _render_layout("/", body, notification)


def render_portal_records(views: RecordViews, identity: Identity | None) -> str:
    assets = views.assets_for(identity.uid if identity is not None else None)
    heading = f"<h3>Your Registered Assets ({len(assets)})</h3>"
    if views.loading:
        return heading + '<p class="muted">Loading Records...</p>'
    if not assets:
        return heading + '<p class="muted">No assets registered yet. Use the form above!</p>'
    items = "".join(_render_portal_asset(asset) for asset in assets)
    return heading + f"<ul>{items}</ul>"


def _render_portal_asset(asset: AssetRegistration) -> str:
    return (
        "<li>"
        f"<strong>{esc(asset.asset_type)}</strong>"
        f'<p class="muted">Model/Serial: {esc(asset.serial_number)}</p>'
        f'<p class="muted">Setup Date: {esc(asset.install_date)}</p>'
        f'<p class="muted">Recorded By ID: <code>{esc(asset.submitter_id[:8])}...</code></p>'
        "</li>"
    )


def render_portal_page(views: RecordViews, identity: Identity | None, notification: Notification | None) -> str:
    body = (
        "<h2>Your Customer Asset Portal</h2>"
        f"{render_identity_banner(identity)}"
        "<section>"
        "<h3>Register New Asset/Equipment</h3>"
        '<form onsubmit="submitForm(event, \'/v1/assets\')">'
        '<label for="asset_type">Asset Type</label>'
        f'<select id="asset_type" name="asset_type">{_options(ASSET_TYPES)}</select>'
        '<label for="serial_number">Model / Serial Number</label>'
        '<input id="serial_number" name="serial_number" placeholder="SERIAL-XYZ-12345" required />'
        '<label for="install_date">Setup / Purchase Date</label>'
        f'<input id="install_date" name="install_date" type="date" value="{esc(today_iso())}" required />'
        f"{_submit_button('Register Asset', identity)}"
        "</form>"
        "</section>"
        f'<section id="records">{render_portal_records(views, identity)}</section>'
    )
    return _render_layout("/portal", body, notification)


def _render_request_row(item: ServiceRequest, tz_name: str) -> str:
    return (
        "<tr>"
        f'<td>{esc(item.client_name)}<br /><span class="muted">{esc(item.email)}</span></td>'
        f"<td>{esc(item.service_type)}</td>"
        f"<td>{esc(item.description)}</td>"
        f"<td>{esc(format_display_time(item.created_at, tz_name))}</td>"
        f"<td>{status_badge(item.status)}</td>"
        "</tr>"
    )


def _render_asset_row(item: AssetRegistration) -> str:
    return (
        "<tr>"
        f"<td>{esc(item.asset_type)}</td>"
        f"<td>{esc(item.serial_number)}</td>"
        f"<td>{esc(item.install_date)}</td>"
        f"<td><code>{esc(item.submitter_id[:8])}...</code></td>"
        "</tr>"
    )


def render_admin_records(views: RecordViews, tz_name: str = "UTC") -> str:
    requests = views.service_requests
    assets = views.asset_registrations
    parts = [f"<h3>Service Requests ({len(requests)})</h3>"]
    if views.loading:
        parts.append('<p class="muted">Loading Requests...</p>')
    elif not requests:
        parts.append('<p class="muted">No new service requests submitted yet.</p>')
    else:
        rows = "".join(_render_request_row(item, tz_name) for item in requests)
        parts.append(
            "<table><thead><tr>"
            "<th>Client / Email</th><th>Service Type</th><th>Description</th><th>Submitted</th><th>Status</th>"
            f"</tr></thead><tbody>{rows}</tbody></table>"
        )
    parts.append(f"<h3>All Registered Assets ({len(assets)})</h3>")
    if views.loading:
        parts.append('<p class="muted">Loading Records...</p>')
    elif not assets:
        parts.append('<p class="muted">No assets have been registered yet.</p>')
    else:
        rows = "".join(_render_asset_row(item) for item in assets)
        parts.append(
            "<table><thead><tr>"
            "<th>Asset Type</th><th>Model / Serial No.</th><th>Setup Date</th><th>Customer ID</th>"
            f"</tr></thead><tbody>{rows}</tbody></table>"
        )
    return "".join(parts)


def render_admin_page(
    views: RecordViews,
    identity: Identity | None,
    notification: Notification | None,
    tz_name: str = "UTC",
) -> str:
    body = (
        "<h2>Administration Panel</h2>"
        f"{render_identity_banner(identity)}"
        f'<section id="records">{render_admin_records(views, tz_name)}</section>'
    )
    return _render_layout("/admin", body, notification)

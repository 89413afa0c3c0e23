from __future__ import annotations

import html as html_lib
from typing import Any

import requests

RELAY_PATH = "/functions/v1/send-portal-email"


class EmailRelayError(RuntimeError):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class EmailRelayClient:
    """Client for the portal email relay.

    The relay looks up the active portal contact for ``client_id`` or
    ``portal_access_id`` and replaces ``{PORTAL_URL}`` and ``{CONTACT_NAME}``
    in the HTML before sending.
    """

    def __init__(self, store_url: str, api_key: str, session: requests.Session | None = None) -> None:
        self.url = store_url.rstrip("/") + RELAY_PATH
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {api_key}",
                "apikey": api_key,
                "Content-Type": "application/json",
            }
        )

    def send(
        self,
        subject: str,
        html: str,
        *,
        client_id: str | None = None,
        portal_access_id: str | None = None,
    ) -> dict[str, Any]:
        if not client_id and not portal_access_id:
            raise EmailRelayError("client_id or portal_access_id is required.")
        payload: dict[str, Any] = {"subject": subject, "html": html}
        if client_id:
            payload["clientId"] = client_id
        else:
            payload["portalAccessId"] = portal_access_id
        try:
            response = self.session.post(self.url, json=payload, timeout=30)
        except requests.RequestException as exc:
            raise EmailRelayError(f"Email relay unreachable: {exc}") from exc
        if response.status_code >= 400:
            raise EmailRelayError(f"Email relay error {response.status_code}: {_error_text(response)}",
                                  response.status_code)
        try:
            body = response.json()
        except ValueError as exc:
            raise EmailRelayError(f"Email relay returned a non-JSON body: {response.text[:200]}",
                                  response.status_code) from exc
        return body if isinstance(body, dict) else {"result": body}


def _error_text(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return response.text


def _page(title: str, body: str) -> str:
    return (
        f"<h2>{html_lib.escape(title)}</h2>"
        f"{body}"
        '<p><a href="{PORTAL_URL}">Open your portal</a></p>'
    )


def portal_message_html(sender_name: str, preview: str) -> str:
    body = (
        "<p>Hi {CONTACT_NAME},</p>"
        f"<p>{html_lib.escape(sender_name)} sent you a message:</p>"
        f"<blockquote>{html_lib.escape(preview)}</blockquote>"
    )
    return _page("New message", body)


def deliverable_status_html(deliverable_name: str, status: str) -> str:
    body = (
        "<p>Hi {CONTACT_NAME},</p>"
        "<p>We've updated the status of a deliverable:</p>"
        f"<p><strong>{html_lib.escape(deliverable_name)}</strong>: {html_lib.escape(status)}</p>"
    )
    return _page("Project update", body)

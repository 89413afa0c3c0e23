from __future__ import annotations

import json
import re
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

import requests

from agencyops.config import DEFAULT_AI_MODEL

OPENROUTER_URL = "https://openrouter.ai/api/v1/chat/completions"
FENCE_RE = re.compile(r"```(?:json)?\n?")


class AIError(RuntimeError):
    pass


@dataclass(frozen=True)
class ClientContext:
    company_name: str
    primary_contact: str | None = None
    industry: str | None = None
    market: str | None = None
    plan_tier: str | None = None
    monthly_value: float | None = None


@dataclass(frozen=True)
class EmailDraft:
    subject: str
    body: str


class AIClient:
    def __init__(
        self,
        api_key: str | None,
        model: str = DEFAULT_AI_MODEL,
        session: requests.Session | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json", "X-Title": "agencyops"})
        if api_key:
            self.session.headers["Authorization"] = f"Bearer {api_key}"

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def complete(
        self,
        messages: list[dict[str, str]],
        *,
        max_tokens: int = 2048,
        temperature: float = 0.7,
    ) -> str:
        if not self.api_key:
            raise AIError("AI API key not configured. Set OPENROUTER_API_KEY.")
        payload = {
            "model": self.model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        try:
            response = self.session.post(OPENROUTER_URL, json=payload, timeout=30)
        except requests.RequestException as exc:
            raise AIError(f"AI request failed: {exc}") from exc
        if response.status_code >= 400:
            raise AIError(f"AI request failed: {response.status_code} {response.text}")
        try:
            data = response.json()
        except ValueError as exc:
            raise AIError(f"AI response was not JSON: {response.text[:200]}") from exc
        if not isinstance(data, dict):
            raise AIError("AI response had an unexpected shape.")
        choices = data.get("choices") or [{}]
        first = choices[0] if isinstance(choices, list) and isinstance(choices[0], dict) else {}
        return (first.get("message") or {}).get("content") or ""

    def generate_content(
        self,
        prompt: str,
        content_type: str,
        *,
        platform: str | None = None,
        tone: str | None = None,
        client: ClientContext | None = None,
        existing_content: str | None = None,
    ) -> str:
        """Write new content, or refine ``existing_content`` following ``prompt``."""
        parts = ["You are a content writer for a digital marketing agency."]
        if client is not None:
            parts.append(
                f"The client is {client.company_name or 'unknown'} in the {client.industry or 'unknown'} "
                f"industry, {client.market or ''} market."
            )
        parts.append(f"Content type: {content_type}. Platform: {platform or 'general'}.")
        parts.append(f"Tone: {tone}." if tone else "Tone: professional but engaging.")
        parts.append("Write high-quality marketing content. Be concise and impactful.")
        parts.append("Do not include meta-commentary about the content, just write it directly.")
        if existing_content:
            user = f"Here is the existing content to improve:\n\n{existing_content}\n\nInstruction: {prompt}"
        else:
            user = prompt
        return self.complete(
            [{"role": "system", "content": " ".join(parts)}, {"role": "user", "content": user}],
            temperature=0.7,
        )

    def generate_email(
        self,
        email_type: str,
        client: ClientContext,
        *,
        additional_context: str | None = None,
        deliverables: Iterable[Any] = (),
        invoices: Iterable[Any] = (),
    ) -> EmailDraft:
        system = " ".join(
            [
                "You are drafting a professional email from a digital marketing agency.",
                f"Recipient: {client.primary_contact} at {client.company_name}.",
                f"Market: {client.market}. Industry: {client.industry}. Plan: {client.plan_tier}.",
                "Tone: professional but friendly. Keep it concise.",
                'Respond in JSON format: {"subject": "...", "body": "..."}',
                "The body should be plain text (not HTML). Use line breaks for paragraphs.",
            ]
        )
        user = [f"Draft a {email_type} email."]
        deliverables = list(deliverables)
        invoices = list(invoices)
        if deliverables:
            lines = "\n".join(f"- {d.name} ({d.service_type}): {d.status}" for d in deliverables)
            user.append(f"\nActive deliverables:\n{lines}")
        if invoices:
            lines = "\n".join(f"- {i.invoice_code}: {i.currency} {i.amount:,} ({i.status})" for i in invoices)
            user.append(f"\nRecent invoices:\n{lines}")
        if additional_context:
            user.append(f"\nAdditional context: {additional_context}")
        raw = self.complete(
            [{"role": "system", "content": system}, {"role": "user", "content": "".join(user)}],
            temperature=0.6,
        )
        return parse_email_draft(raw, email_type, client.company_name)


def parse_email_draft(raw: str, email_type: str, company_name: str) -> EmailDraft:
    cleaned = FENCE_RE.sub("", raw).strip()
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError:
        parsed = None
    if isinstance(parsed, dict) and "subject" in parsed and "body" in parsed:
        return EmailDraft(subject=str(parsed["subject"]), body=str(parsed["body"]))
    return EmailDraft(subject=f"{email_type} - {company_name}", body=raw)

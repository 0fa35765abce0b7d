"""Supabase/PostgREST implementation of the relation query interface."""
from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Tuple

import requests

from creator_discovery.core.backend import QueryBackend, QueryResult, TableQuery
from creator_discovery.core.errors import BackendError, TransientBackendError
from creator_discovery.core.filters import Predicate

_RESERVED = re.compile(r'[,.:()"\s]')
_CONTENT_RANGE = re.compile(r"^(?:\d+-\d+|\*)/(\d+|\*)$")


def format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _quote(value: Any) -> str:
    text = format_value(value)
    if _RESERVED.search(text):
        escaped = text.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return text


def encode_operand(predicate: Predicate) -> str:
    """Right-hand side of a PostgREST filter, e.g. ``gte.1000`` or ``in.(a,b)``."""
    if predicate.op == "in":
        return "in.(" + ",".join(_quote(value) for value in predicate.value) + ")"
    if predicate.op == "ilike":
        return "ilike." + str(predicate.value).replace("%", "*")
    if predicate.op in ("eq", "gte", "lte"):
        return f"{predicate.op}.{format_value(predicate.value)}"
    raise BackendError(f"Cannot encode nested predicate op '{predicate.op}'")


def encode_predicate(predicate: Predicate) -> Tuple[str, str]:
    if predicate.op == "or":
        members = ",".join(f"{member.field}.{encode_operand(member)}" for member in predicate.value)
        return "or", f"({members})"
    return predicate.field, encode_operand(predicate)


def build_params(query: TableQuery) -> List[Tuple[str, str]]:
    params: List[Tuple[str, str]] = [("select", query.columns or "*")]
    params.extend(encode_predicate(predicate) for predicate in query.predicates)
    if query.order:
        clauses = [
            f"{column}.{'asc' if ascending else 'desc'}.nullslast"
            for column, ascending in query.order
        ]
        params.append(("order", ",".join(clauses)))
    return params


def parse_content_range(header: Optional[str]) -> Optional[int]:
    """Total from ``Content-Range: 0-23/30``; ``None`` when the server did not count."""
    if not header:
        return None
    match = _CONTENT_RANGE.match(header.strip())
    if not match or match.group(1) == "*":
        return None
    return int(match.group(1))


class PostgrestBackend(QueryBackend):
    """Query a Supabase table through its REST endpoint."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout: float = 15,
        session: Optional[requests.Session] = None,
    ) -> None:
        base_url = (base_url or "").rstrip("/")
        if not base_url:
            raise RuntimeError("SUPABASE_URL must be configured to use the PostgREST backend")
        if not api_key:
            raise RuntimeError("SUPABASE_KEY must be configured to use the PostgREST backend")

        self.base_url = base_url
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Accept": "application/json",
            }
        )

    def _url(self, table: str) -> str:
        return f"{self.base_url}/rest/v1/{table}"

    def _send(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except (requests.ConnectionError, requests.Timeout) as exc:
            raise TransientBackendError(f"{method} {url} failed: {exc}") from exc
        except requests.RequestException as exc:
            raise BackendError(f"{method} {url} failed: {exc}") from exc

        if response.status_code >= 500:
            raise TransientBackendError(f"Backend returned {response.status_code}: {self._error_text(response)}")
        if response.status_code >= 400 and response.status_code != 416:
            raise BackendError(f"Backend returned {response.status_code}: {self._error_text(response)}")
        return response

    @staticmethod
    def _error_text(response: requests.Response) -> str:
        try:
            payload = response.json()
        except ValueError:
            return response.text[:200]
        if isinstance(payload, dict):
            return str(payload.get("message") or payload.get("hint") or payload)
        return str(payload)

    def select(self, query: TableQuery) -> QueryResult:
        headers: Dict[str, str] = {}
        if query.count:
            headers["Prefer"] = "count=exact"
        if query.window is not None:
            start, end = query.window
            headers["Range-Unit"] = "items"
            headers["Range"] = f"{start}-{end}"

        response = self._send("GET", self._url(query.table), params=build_params(query), headers=headers)
        total = parse_content_range(response.headers.get("Content-Range")) if query.count else None

        if response.status_code == 416:
            return QueryResult(rows=[], count=total)

        try:
            rows = response.json()
        except ValueError as exc:
            raise BackendError(f"Backend returned a non-JSON body: {exc}") from exc
        if not isinstance(rows, list):
            raise BackendError("Backend returned an unexpected payload shape")
        if query.count and total is None:
            raise BackendError("Backend did not return an exact count")
        return QueryResult(rows=rows, count=total)

    def update(self, table: str, row_id: Any, values: Dict[str, Any]) -> None:
        self._send(
            "PATCH",
            self._url(table),
            params=[("id", f"eq.{format_value(row_id)}")],
            json=values,
            headers={"Prefer": "return=minimal"},
        )

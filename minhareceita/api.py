"""The HTTP API serving company data as JSON."""

from __future__ import annotations

import json
import logging
import os
from typing import Protocol

from werkzeug.serving import run_simple
from werkzeug.utils import redirect
from werkzeug.wrappers import Request, Response

logger = logging.getLogger(__name__)

CACHE_MAX_AGE = 24 * 60 * 60
CACHE_CONTROL = f"max-age={CACHE_MAX_AGE}"
DOCS_URL = "https://docs.minhareceita.org"
DEFAULT_PORT = "8000"

_ONLY_GET = "Essa URL aceita apenas o método GET."
_COMPANY_HEADERS = {
    "Cache-Control": CACHE_CONTROL,
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Accept, Content-Type, Content-Length, Accept-Encoding",
}
_FIRST_WEIGHTS = (5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2)
_SECOND_WEIGHTS = (6,) + _FIRST_WEIGHTS


class _Database(Protocol):
    def get_company(self, number: str) -> str: ...

    def meta_read(self, key: str) -> str: ...


def _unmask(number: str) -> str:
    return number.translate(str.maketrans("", "", "./-"))


def _mask(number: str) -> str:
    digits = _unmask(number)
    if len(digits) != 14:
        return digits
    return f"{digits[:2]}.{digits[2:5]}.{digits[5:8]}/{digits[8:12]}-{digits[12:]}"


def _check_digit(digits: str, weights: tuple[int, ...]) -> int:
    remainder = sum(int(d) * w for d, w in zip(digits, weights)) % 11
    return 0 if remainder < 2 else 11 - remainder


def _is_valid(number: str) -> bool:
    digits = _unmask(number)
    if len(digits) != 14 or not digits.isascii() or not digits.isdigit():
        return False
    first = _check_digit(digits[:12], _FIRST_WEIGHTS)
    second = _check_digit(digits[:13], _SECOND_WEIGHTS)
    return digits[12:] == f"{first}{second}"


def _empty(status: int) -> Response:
    response = Response(status=status)
    del response.headers["Content-Type"]
    return response


def _message(status: int, message: str = "") -> Response:
    """A response with ``message`` wrapped in a JSON object."""
    if not message:
        return _empty(status)
    body = json.dumps({"message": message}, ensure_ascii=False, separators=(",", ":"))
    body = body.replace("<", "\\u003c").replace(">", "\\u003e").replace("&", "\\u0026")
    return Response(body, status=status, content_type="application/json")


class Api:
    """WSGI application with the company, updated-at and health endpoints."""

    def __init__(self, db: _Database, host: str = "") -> None:
        self.db = db
        self.host = host or ""

    def __call__(self, environ, start_response):
        request = Request(environ)
        return self._dispatch(request)(environ, start_response)

    def _dispatch(self, request: Request) -> Response:
        if self.host:
            given = request.headers.get("Host", "")
            if given != self.host:
                logger.warning("Host %s not allowed", given)
                return _empty(418)
        if request.path == "/updated":
            return self.updated(request)
        if request.path == "/healthz":
            return self.health(request)
        return self.company(request)

    def company(self, request: Request) -> Response:
        """Serve the JSON of the company whose CNPJ is the request path."""
        response = self._company(request)
        for key, value in _COMPANY_HEADERS.items():
            response.headers[key] = value
        return response

    def _company(self, request: Request) -> Response:
        if request.method == "OPTIONS":
            return _empty(200)
        if request.method != "GET":
            return _message(405, _ONLY_GET)
        path = request.path
        if path == "/":
            return redirect(DOCS_URL, 302)
        if not _is_valid(path):
            return _message(400, f"CNPJ {_mask(path[1:])} inválido.")
        try:
            content = self.db.get_company(_unmask(path))
        except Exception:
            return _message(404, f"CNPJ {_mask(path)} não encontrado.")
        return Response(content, status=200, content_type="application/json")

    def updated(self, request: Request) -> Response:
        """Serve the date the data was extracted by the Federal Revenue."""
        if request.method != "GET":
            return _message(405, _ONLY_GET)
        try:
            value = self.db.meta_read("updated-at")
        except Exception:
            return _message(500, "Erro buscando data de atualização.")
        if not value:
            return _empty(500)
        response = _message(
            200, f"{value} é a data de extração dos dados pela Receita Federal."
        )
        response.headers["Cache-Control"] = CACHE_CONTROL
        return response

    def health(self, request: Request) -> Response:
        if request.method != "GET":
            return _message(405, _ONLY_GET)
        return _empty(200)


def serve(db: _Database, port=DEFAULT_PORT) -> None:
    """Run the HTTP server on all interfaces."""
    port = str(port).lstrip(":")
    app = Api(db, os.environ.get("ALLOWED_HOST", ""))
    logger.info("Serving at http://0.0.0.0:%s", port)
    run_simple("0.0.0.0", int(port), app)
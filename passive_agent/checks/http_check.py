from __future__ import annotations

import time
import requests

from passive_agent.errors import CheckError


def _build_url(params: list[str]) -> str:
    if not 1 <= len(params) <= 3:
        raise CheckError("Invalid number of parameters.")
    host = params[0]
    if not host:
        raise CheckError("Invalid first parameter.")
    path = params[1] if len(params) > 1 else ""
    port = params[2] if len(params) > 2 and params[2] else "80"
    if not port.isdigit() or not 1 <= int(port) <= 65535:
        raise CheckError("Invalid third parameter.")

    if "://" not in host:
        host = f"http://{host}"
    return f"{host.rstrip('/')}:{port}/{path.lstrip('/')}"


def web_page_get(params: list[str], timeout_s: float = 3) -> str:
    url = _build_url(params)
    try:
        r = requests.get(url, timeout=timeout_s)
    except requests.RequestException as e:
        raise CheckError(f"Cannot get content of web page: {e}") from e
    return r.text


def web_page_perf(params: list[str], timeout_s: float = 3) -> str:
    url = _build_url(params)
    start = time.perf_counter()
    try:
        requests.get(url, timeout=timeout_s)
    except requests.RequestException:
        return "0"
    return str(round(time.perf_counter() - start, 6))

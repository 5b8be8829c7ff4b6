"""Supabase Edge Function calls over HTTP."""

from __future__ import annotations

import requests

from nichefinder.config import SUPABASE_SECRET_KEY, SUPABASE_URL


def function_url(name: str) -> str:
    return f"{SUPABASE_URL.rstrip('/')}/functions/v1/{name}"


def invoke_function(
    name: str, body: dict, timeout: float, access_token: str | None = None
) -> dict:
    """POST a JSON body to an Edge Function and return its JSON payload.

    Args:
        name: function name, e.g. "get-keyword-data"
        body: JSON request body
        timeout: seconds before the call is abandoned
        access_token: user JWT; the service key is used when omitted

    Raises:
        requests.RequestException: transport failure or non-2xx status.
        ValueError: the response body is not JSON.
    """
    headers = {
        "Authorization": f"Bearer {access_token or SUPABASE_SECRET_KEY}",
        "apikey": SUPABASE_SECRET_KEY,
        "Content-Type": "application/json",
    }
    resp = requests.post(function_url(name), json=body, headers=headers, timeout=timeout)
    resp.raise_for_status()
    return resp.json()

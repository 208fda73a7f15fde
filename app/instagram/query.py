from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Dict, Optional


@dataclass(frozen=True)
class GraphQLQuery:
    document_id: str
    form: Dict[str, str]
    headers: Dict[str, str]


def build_variables(shortcode: str) -> str:
    return json.dumps(
        {
            "shortcode": shortcode,
            "fetch_tagged_user_count": None,
            "hoisted_comment_id": None,
            "hoisted_reply_id": None,
        }
    )


def build_form(shortcode: str, document_id: str) -> Dict[str, str]:
    return {
        "variables": build_variables(shortcode),
        "doc_id": document_id,
    }


def build_headers(
    *,
    user_agent: str,
    referer: str,
    csrf_token: Optional[str] = None,
) -> Dict[str, str]:
    headers = {
        "User-Agent": user_agent,
        "Content-Type": "application/x-www-form-urlencoded",
        "Referer": referer,
        "Accept": "*/*",
        "Accept-Language": "en-US,en;q=0.9",
        "Sec-Fetch-Dest": "empty",
        "Sec-Fetch-Mode": "cors",
        "Sec-Fetch-Site": "same-origin",
    }
    if csrf_token:
        headers["X-CSRFToken"] = csrf_token
    return headers


def build_query(
    shortcode: str,
    document_id: str,
    *,
    user_agent: str,
    referer: str,
    csrf_token: Optional[str] = None,
) -> GraphQLQuery:
    return GraphQLQuery(
        document_id=document_id,
        form=build_form(shortcode, document_id),
        headers=build_headers(user_agent=user_agent, referer=referer, csrf_token=csrf_token),
    )

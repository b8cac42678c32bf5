"""
Entry pass email bodies.

Caller-supplied html/text may use {{name}}, {{email}} and {{url}}.
"""

import html as html_lib
import re
from dataclasses import dataclass
from typing import Dict, Optional

DEFAULT_SUBJECT = "Your Entry Pass"

_PLACEHOLDER = re.compile(r"\{\{(\w+)\}\}")


@dataclass
class RenderedMessage:
    subject: str
    html: str
    text: str


def process_template(template: str, variables: Dict[str, str]) -> str:
    """Replace known {{key}} placeholders; unknown placeholders are left as is."""

    def _sub(match: "re.Match[str]") -> str:
        key = match.group(1)
        if key not in variables:
            return match.group(0)
        return variables[key] or ""

    return _PLACEHOLDER.sub(_sub, template)


def default_html(name: str, url: str) -> str:
    greeting = f"{html_lib.escape(name)} 様" if name else ""
    safe_url = html_lib.escape(url, quote=True)
    return (
        "<div>\n"
        f"  <p>{greeting}</p>\n"
        "  <p>イベントの入場用リンクです。こちらのリンクを当日入口でスタッフにお見せください。</p>\n"
        "  <p>This is your entry pass. Show this link at the entrance on event day.</p>\n"
        f'  <p><a href="{safe_url}">{safe_url}</a></p>\n'
        "</div>"
    )


def default_text(name: str, url: str) -> str:
    greeting = f"{name} 様\n" if name else ""
    return (
        f"{greeting}"
        "イベントの入場用リンクです。当日入口でスタッフにお見せください。\n"
        "This is your entry pass. Show this link at the entrance.\n"
        f"{url}"
    )


def render_entry_pass_message(
    *,
    name: str,
    email: str,
    url: str,
    subject: Optional[str] = None,
    html: Optional[str] = None,
    text: Optional[str] = None,
) -> RenderedMessage:
    variables = {"name": name or "", "email": email or "", "url": url}
    return RenderedMessage(
        subject=(subject or DEFAULT_SUBJECT).strip(),
        html=process_template(html or default_html(name, url), variables),
        text=process_template(text or default_text(name, url), variables),
    )

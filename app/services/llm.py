from __future__ import annotations
import json, re
from typing import Dict, Any, List

from app.utils.config import (
    OPENAI_API_KEY,
    ANTHROPIC_API_KEY,
    LLM_PROVIDER,
    OPENAI_CHAT_MODEL,
    ANTHROPIC_MODEL,
    EMBEDDING_MODEL,
    EMBEDDING_DIMENSIONS,
)
from app.utils.logging_config import get_logger

logger = get_logger(__name__)

# --- Optional clients (loaded lazily so missing keys don't crash import) ---
_openai_client = None
_anthropic_client = None


class LLMError(Exception):
    """Model call failed or returned something we can't use."""
    pass


def _get_openai():
    global _openai_client
    if _openai_client is None and OPENAI_API_KEY:
        from openai import OpenAI
        _openai_client = OpenAI(api_key=OPENAI_API_KEY)
    return _openai_client

def _get_anthropic():
    global _anthropic_client
    if _anthropic_client is None and ANTHROPIC_API_KEY:
        from anthropic import Anthropic
        _anthropic_client = Anthropic(api_key=ANTHROPIC_API_KEY)
    return _anthropic_client

TIMELINE_INSTRUCTIONS = (
    "You turn a personal story into a timeline. "
    "Extract the discrete life events the author describes, in chronological order. "
    "Each event needs a time marker: an absolute date when the text gives one "
    "(e.g. '2019', 'March 2020'), otherwise a relative marker (e.g. 'childhood', "
    "'two years later'). Do not invent events that are not in the text."
)

TIMELINE_TEMPLATE = """Story:
{story}

Return ONLY JSON:
{{
  "events": [
    {{"date": "2019", "description": "Moved to Berlin", "category": "relocation"}}
  ]
}}
"""

TITLE_INSTRUCTIONS = (
    "You write titles for personal stories. "
    "Reply with a single short title (at most 8 words), no quotes, no trailing punctuation. "
    "If the text has no clear subject, reply with NONE."
)

# Model replies that mean "no good title"
_NO_TITLE = {"none", "n/a", "untitled", "no title"}


def _coerce_json(s: str) -> Dict[str, Any]:
    # try plain json first
    try:
        return json.loads(s)
    except Exception:
        pass
    # try to extract the first {...} block
    m = re.search(r"\{.*\}", s, flags=re.S)
    if m:
        try:
            return json.loads(m.group(0))
        except Exception:
            pass
    raise LLMError("LLM did not return valid JSON")


def _complete(system: str, user: str, max_tokens: int = 1200) -> str:
    """One chat completion on the configured provider. Returns the raw text."""
    if LLM_PROVIDER == "anthropic":
        claude = _get_anthropic()
        if not claude:
            raise LLMError("ANTHROPIC_API_KEY is not set")
        msg = claude.messages.create(
            model=ANTHROPIC_MODEL,
            max_tokens=max_tokens,
            temperature=0.2,
            system=system,
            messages=[{"role": "user", "content": user}],
        )
        # anthropic returns content as blocks
        return "".join(block.text for block in msg.content if getattr(block, "type", "") == "text")

    oai = _get_openai()
    if not oai:
        raise LLMError("OPENAI_API_KEY is not set")
    resp = oai.chat.completions.create(
        model=OPENAI_CHAT_MODEL,
        messages=[
            {"role": "system", "content": system},
            {"role": "user", "content": user},
        ],
        max_tokens=max_tokens,
        temperature=0.2,
    )
    return resp.choices[0].message.content or ""


def generate_embedding(text: str) -> List[float]:
    oai = _get_openai()
    if not oai:
        raise LLMError("OPENAI_API_KEY is not set")
    resp = oai.embeddings.create(
        model=EMBEDDING_MODEL,
        input=text[:8000],
        dimensions=EMBEDDING_DIMENSIONS,
    )
    vec = [float(v) for v in resp.data[0].embedding]
    logger.debug("embedding model=%s dims=%d", EMBEDDING_MODEL, len(vec))
    if len(vec) != EMBEDDING_DIMENSIONS:
        raise LLMError(f"expected {EMBEDDING_DIMENSIONS} dimensions, got {len(vec)}")
    return vec


def process_story_to_timeline(text: str) -> Dict[str, Any]:
    """
    Returns the timeline as stored on the story:
    { "events": [{ "date": str, "description": str, ...extra keys kept }] }
    """
    out = _complete(TIMELINE_INSTRUCTIONS, TIMELINE_TEMPLATE.format(story=text[:12000]))
    data = _coerce_json(out)
    events = data.get("events")
    if not isinstance(events, list):
        logger.warning("timeline reply without events list: %.200s", out)
        raise LLMError("timeline JSON has no 'events' list")

    cleaned: List[Dict[str, Any]] = []
    for e in events:
        if not isinstance(e, dict):
            continue
        desc = str(e.get("description") or "").strip()
        if not desc:
            continue
        e["description"] = desc
        e["date"] = str(e.get("date") or "").strip() or "unknown"
        cleaned.append(e)
    return {"events": cleaned}


def generate_title(text: str) -> str:
    """Short title, or "" when the model finds nothing worth naming."""
    out = _complete(TITLE_INSTRUCTIONS, text[:4000], max_tokens=40)
    title = out.strip().splitlines()[0] if out.strip() else ""
    title = title.strip().strip('"\'').rstrip(".").strip()
    if title.lower() in _NO_TITLE:
        return ""
    return title[:200]

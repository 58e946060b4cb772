# vendorwatch/services/llm_client.py
"""
vendorwatch/services/llm_client.py

Single call_llm() entrypoint over OpenAI and Google Gemini, used by the
document extractor and the narrative analyzer.

Return shape (both providers):
    {
      "text": "<raw text output>",
      "structured": <parsed JSON (function arguments or JSON found in text) or None>,
      "raw": <provider response>,
      "provider": "openai" | "gemini"
    }

Provider selection: explicit argument, then LLM_PROVIDER, then whichever API
key is configured (Gemini first). No key at all raises RuntimeError; callers
treat that as "LLM unavailable".
"""

from __future__ import annotations
import json
import logging
from typing import Any, Dict, Optional

from vendorwatch.config import cfg

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_GEMINI_MODEL = "gemini-2.0-flash"

# SDK clients are created lazily so importing this module never needs a key
_openai_client = None
_genai_module = None


def _init_openai():
    global _openai_client
    if _openai_client is None:
        from openai import OpenAI
        _openai_client = OpenAI(api_key=cfg.OPENAI_API_KEY)
        logger.debug("OpenAI client initialized")
    return _openai_client


def _init_genai():
    global _genai_module
    if _genai_module is None:
        import google.generativeai as genai
        genai.configure(api_key=cfg.GEMINI_API_KEY)
        _genai_module = genai
        logger.debug("google.generativeai configured")
    return _genai_module


def _extract_json_from_text(text: str) -> Optional[Any]:
    """Best-effort parse of the outermost JSON object (or array) inside text."""
    if not text or not isinstance(text, str):
        return None
    s = text.strip()
    for open_ch, close_ch in (("{", "}"), ("[", "]")):
        start, end = s.find(open_ch), s.rfind(close_ch)
        if start == -1 or end <= start:
            continue
        fragment = s[start:end + 1]
        try:
            return json.loads(fragment)
        except ValueError:
            try:
                return json.loads(fragment.replace(",}", "}").replace(",]", "]"))
            except ValueError:
                return None
    return None


def pick_provider(provider: Optional[str] = None) -> str:
    chosen = (provider or cfg.LLM_PROVIDER or "").strip().lower()
    if chosen:
        return chosen
    if cfg.GEMINI_API_KEY:
        return "gemini"
    if cfg.OPENAI_API_KEY:
        return "openai"
    raise RuntimeError("No LLM provider configured (set GEMINI_API_KEY or OPENAI_API_KEY in env)")


def _call_openai(prompt: str, system: Optional[str], model: str, function_schema: Optional[Dict],
                 max_tokens: int, temperature: float, timeout: Optional[float]) -> Dict[str, Any]:
    if not cfg.OPENAI_API_KEY:
        raise RuntimeError("OPENAI_API_KEY missing")
    client = _init_openai()
    messages = []
    if system:
        messages.append({"role": "system", "content": system})
    messages.append({"role": "user", "content": prompt})

    kwargs: Dict[str, Any] = dict(model=model, messages=messages, temperature=temperature,
                                  max_tokens=max_tokens, timeout=timeout)
    if function_schema:
        name = function_schema.get("name", "fn")
        kwargs["tools"] = [{
            "type": "function",
            "function": {
                "name": name,
                "description": function_schema.get("description", ""),
                "parameters": function_schema.get("parameters", {}),
            },
        }]
        kwargs["tool_choice"] = {"type": "function", "function": {"name": name}}

    resp = client.chat.completions.create(**kwargs)
    msg = resp.choices[0].message
    text = msg.content or ""
    structured = None
    tool_calls = getattr(msg, "tool_calls", None) or []
    if tool_calls:
        args_raw = tool_calls[0].function.arguments
        try:
            structured = json.loads(args_raw)
        except ValueError:
            structured = _extract_json_from_text(args_raw)
    if structured is None:
        structured = _extract_json_from_text(text)
    return {"text": text, "structured": structured, "raw": resp, "provider": "openai"}


def _call_gemini(prompt: str, system: Optional[str], model: str, function_schema: Optional[Dict],
                 max_tokens: int, temperature: float, timeout: Optional[float]) -> Dict[str, Any]:
    if not cfg.GEMINI_API_KEY:
        raise RuntimeError("GEMINI_API_KEY missing")
    genai = _init_genai()
    gen_config = dict(max_output_tokens=max_tokens, temperature=temperature)
    if function_schema:
        # Gemini gets the schema in-prompt and is asked for JSON
        gen_config["response_mime_type"] = "application/json"
        prompt = (f"{prompt}\n\nRespond with a single JSON object matching this schema:\n"
                  f"{json.dumps(function_schema.get('parameters', {}), indent=2)}")
    model_instance = genai.GenerativeModel(model, system_instruction=system) if system else genai.GenerativeModel(model)
    request_options = {"timeout": timeout} if timeout else None
    resp = model_instance.generate_content(
        prompt,
        generation_config=genai.GenerationConfig(**gen_config),
        request_options=request_options,
    )

    text = ""
    try:
        text = resp.text or ""
    except ValueError:
        # blocked or empty candidates; fall back to joining parts
        for cand in getattr(resp, "candidates", None) or []:
            parts = getattr(getattr(cand, "content", None), "parts", None) or []
            text = "".join(getattr(p, "text", "") for p in parts)
            if text:
                break
    return {"text": text, "structured": _extract_json_from_text(text), "raw": resp, "provider": "gemini"}


def call_llm(prompt: str,
             provider: Optional[str] = None,
             model: Optional[str] = None,
             function_schema: Optional[Dict] = None,
             system: Optional[str] = None,
             max_tokens: int = 1024,
             temperature: float = 0.0,
             timeout: Optional[float] = None) -> Dict[str, Any]:
    """
    Unified LLM call.

    function_schema follows the function-calling shape
    {"name": ..., "description": ..., "parameters": <JSON schema>}; when given,
    "structured" holds the parsed arguments.

    Raises RuntimeError when the chosen provider has no key and ValueError for an
    unknown provider. SDK errors propagate after being logged.
    """
    chosen = pick_provider(provider)
    try:
        if chosen == "openai":
            return _call_openai(prompt, system, model or DEFAULT_OPENAI_MODEL, function_schema,
                                max_tokens, temperature, timeout)
        if chosen == "gemini":
            return _call_gemini(prompt, system, model or DEFAULT_GEMINI_MODEL, function_schema,
                                max_tokens, temperature, timeout)
    except RuntimeError:
        raise
    except Exception as e:
        logger.exception("%s call failed: %s", chosen, e)
        raise
    raise ValueError(f"Unsupported provider: {chosen}")

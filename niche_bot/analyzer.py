"""
Niche analysis using an OpenAI-compatible chat completions API.

Sends the formatted candidates to the LLM, then parses and structurally
validates the JSON it returns. Validation is a single pass: output that
does not match the expected shape is rejected, never repaired.
"""

import json
import logging
import math
import re
from datetime import date, datetime
from pathlib import Path
from typing import Any, Optional, Protocol

import requests

from .config import Config
from .models import AnalysisResult, FeaturedApp, Niche


logger = logging.getLogger(__name__)


# Apps expected in niche 1 and niche 2
DEFAULT_APP_COUNTS = (2, 1)


class AnalysisError(Exception):
    """Raised when the analysis cannot be obtained or trusted."""
    pass


class EmptyResponse(AnalysisError):
    """The reasoning service returned no content."""
    pass


class MalformedResponse(AnalysisError):
    """The response is not parseable as a JSON object."""
    pass


class SchemaViolation(AnalysisError):
    """The response parsed but does not have the expected structure."""
    pass


class Reasoner(Protocol):
    """Anything that turns a prompt into raw response text."""

    def complete(self, prompt: str) -> str: ...


# =============================================================================
# TRACE LOGGING - Full prompt/response pairs for debugging
# =============================================================================

_trace_logger: Optional[logging.Logger] = None


def _get_trace_logger(model_name: str) -> logging.Logger:
    """
    Get or create a trace logger that writes to a timestamped file.

    Creates a file: logs/{model_name}_trace_{date}_{time}.log
    """
    global _trace_logger

    if _trace_logger is not None:
        return _trace_logger

    logs_dir = Path("logs")
    logs_dir.mkdir(exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    safe_model_name = model_name.replace("/", "_").replace(":", "_")
    log_path = logs_dir / f"{safe_model_name}_trace_{timestamp}.log"

    _trace_logger = logging.getLogger(f"llm_trace.{safe_model_name}")
    _trace_logger.setLevel(logging.DEBUG)
    _trace_logger.propagate = False

    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(
        "%(asctime)s [%(levelname)s]\n%(message)s\n",
        datefmt="%Y-%m-%d %H:%M:%S"
    ))
    _trace_logger.addHandler(file_handler)

    logger.info(f"LLM trace logging to: {log_path}")

    return _trace_logger


def _log_llm_call(
    trace_logger: logging.Logger,
    prompt: str,
    response: str,
    model: str,
    duration_ms: float,
    total_tokens: Optional[int] = None,
) -> None:
    """Log a complete LLM call with input and output."""
    separator = "=" * 80

    log_message = f"""
{separator}
MODEL: {model}
DURATION: {duration_ms:.0f}ms
{f"TOKENS: {total_tokens}" if total_tokens else ""}
{separator}

>>> INPUT PROMPT >>>
{prompt}

<<< OUTPUT RESPONSE <<<
{response}

{separator}
"""
    trace_logger.debug(log_message)


# =============================================================================
# REASONING SERVICE CLIENT
# =============================================================================

class ReasoningClient:
    """
    Chat completions client for the reasoning service.

    The API key is checked on the first request, not at construction.
    """

    def __init__(self, config: Config, temperature: float = 0.7):
        self._config = config
        self.model = config.openai_model
        self.base_url = config.openai_base_url
        self.timeout = config.openai_timeout
        self.temperature = temperature

    def complete(self, prompt: str) -> str:
        """
        Submit a single-message prompt and return the reply text.

        Returns:
            The first choice's content, or "" if the service sent none.

        Raises:
            ConfigError: If OPENAI_API_KEY is not set.
            AnalysisError: If the request fails or the reply is not a JSON object.
        """
        api_key = self._config.require("openai_api_key")
        url = f"{self.base_url.rstrip('/')}/chat/completions"

        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.temperature,
        }
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

        start_time = datetime.now()

        try:
            response = requests.post(url, json=payload, headers=headers, timeout=self.timeout)
            response.raise_for_status()
        except requests.Timeout:
            raise AnalysisError(f"Reasoning request timed out after {self.timeout}s")
        except requests.RequestException as e:
            raise AnalysisError(f"Reasoning request failed: {e}") from e

        duration_ms = (datetime.now() - start_time).total_seconds() * 1000

        try:
            data = response.json()
        except ValueError as e:
            raise AnalysisError(f"Reasoning service returned invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise AnalysisError(f"Reasoning service returned unexpected body: {type(data).__name__}")

        choices = data.get("choices") or []
        content = ""
        if choices:
            content = (choices[0].get("message") or {}).get("content") or ""

        _log_llm_call(
            trace_logger=_get_trace_logger(self.model),
            prompt=prompt,
            response=content,
            model=self.model,
            duration_ms=duration_ms,
            total_tokens=(data.get("usage") or {}).get("total_tokens"),
        )

        return content


# =============================================================================
# PROMPT
# =============================================================================

PROMPT_TEMPLATE = """You are a DEAL SPOTTER for indie developers. Your job is to find profitable app opportunities that others miss.

{opportunities}

=== YOUR MINDSET ===
Think like an indie dev looking for their next $5K/month app.
You're not a market analyst - you're a treasure hunter finding REAL opportunities.

A GOOD DEAL has:
✅ Proof it works (apps already ranking with small teams)
✅ Low barrier to entry (1 dev can build it in < 3 months)
✅ Clear path to $1K-10K MRR (subscription, IAP, or premium)
✅ Audience reachable organically (social media, SEO, communities)
✅ Room for improvement (outdated UI, missing features, bad UX)

A BAD DEAL has:
❌ Requires enterprise sales or B2B partnerships
❌ Dominated by big players with huge budgets
❌ No clear monetization (purely free, ad-dependent)
❌ Audience too niche or unreachable (doctors, lawyers, accountants...)
❌ Requires specialized knowledge (medical, legal, financial compliance)
❌ Requires real-world logistics (delivery, booking, inventory)

=== STEP 1: SCAN ===
Look at ALL apps and clusters. Identify patterns:
- Which clusters have multiple apps ranking?
- Which apps are from solo devs or small teams?
- Which apps prove the market pays? (look for paid apps or clear freemium)

=== STEP 2: FILTER ===
For each potential niche, ask yourself:
1. "Can I build this alone in 2-3 months?" → If no, ELIMINATE
2. "Can I reach this audience on Twitter/TikTok/Reddit?" → If no, ELIMINATE
3. "Are users ALREADY paying for this?" → If no proof, ELIMINATE
4. "Is there room for a better version?" → If no, ELIMINATE
5. "Do the apps actually solve the SAME problem?" → If not, ELIMINATE

=== STEP 3: SELECT THE 2 BEST DEALS ===
Pick the 2 niches with the strongest "indie opportunity signal":
- Small dev proving it works
- Clear monetization
- Obvious gaps to exploit
- Audience you can reach

CRITICAL RULES:
- Niche 1 and Niche 2 must be from DIFFERENT categories
- Apps within a niche must solve the SAME core problem (users of App A would want App B)
- Name niches simply: "Sleep Sound Apps", "Calorie Trackers" - NOT jargon like "Wellness Optimization Tools"
- EXCLUDE big corporations and famous brands
- EXCLUDE B2B/professional tools
- Use app names EXACTLY as written in the data
- Write EVERYTHING in ENGLISH

=== OUTPUT FORMAT (JSON ONLY) ===
{{
  "title": "Catchy title with emoji, max 60 chars",
  "date": "{today}",
  "hook": "One punchy sentence: what's the opportunity and why NOW. Use specific numbers from the data.",
  "niches": [
    {{
      "name": "Simple 2-4 word niche name",
      "emoji": "🎯",
      "cluster_size": 5,
      "intro": "1-2 sentences: What problem do these apps solve? Who uses them?",
      "why_hot": "Why is this a good deal RIGHT NOW? Mention specific apps/ranks as proof. 2 sentences max.",
      "gap": "What's WRONG with current apps? What would make users switch?",
      "competition": 40,
      "potential": 85,
      "apps": [
        {{"name": "App name from data", "rank": 12, "country": "US", "flag": "🇺🇸", "dev_type": "indie", "insight": "Why this app PROVES the opportunity. One punchy sentence."}},
        {{"name": "Second app for niche 1", "rank": 8, "country": "FR", "flag": "🇫🇷", "dev_type": "small_studio", "insight": "What this app adds to the opportunity story."}}
      ]
    }},
    {{
      "name": "Different category niche",
      "emoji": "📱",
      "cluster_size": 3,
      "intro": "What's this niche about?",
      "why_hot": "Why is this worth exploring?",
      "gap": "The weakness to exploit.",
      "competition": 35,
      "potential": 70,
      "apps": [
        {{"name": "One app for niche 2", "rank": 15, "country": "DE", "flag": "🇩🇪", "dev_type": "indie", "insight": "Why this app shows the opportunity."}}
      ]
    }}
  ],
  "action": "MAX 15 WORDS. Specific next step tied to Niche #1."
}}

FINAL CHECKLIST (verify before responding):
□ Both niches are from DIFFERENT categories
□ All apps within a niche solve the SAME problem
□ competition and potential are integers from 0 to 100
□ Niche 1 has exactly {niche1_count} apps, Niche 2 has exactly {niche2_count} app
□ Output is valid JSON only, no markdown"""


def build_prompt(
    opportunities_text: str,
    today: Optional[date] = None,
    app_counts: tuple[int, int] = DEFAULT_APP_COUNTS,
) -> str:
    """Build the analysis prompt around the formatted candidates."""
    today = today or date.today()
    return PROMPT_TEMPLATE.format(
        opportunities=opportunities_text,
        today=today.strftime("%B %d, %Y").replace(" 0", " "),
        niche1_count=app_counts[0],
        niche2_count=app_counts[1],
    )


# =============================================================================
# PARSING & VALIDATION
# =============================================================================

FENCE_OPEN_PATTERN = re.compile(r"^```(?:json)?[ \t]*\n?", re.IGNORECASE)
FENCE_CLOSE_PATTERN = re.compile(r"\n?```$")


def _strip_code_fences(text: str) -> str:
    """Remove an optional ```json ... ``` wrapper."""
    text = text.strip()
    text = FENCE_OPEN_PATTERN.sub("", text)
    text = FENCE_CLOSE_PATTERN.sub("", text)
    return text.strip()


def _require_str(obj: dict, key: str, where: str) -> str:
    value = obj.get(key)
    if not isinstance(value, str) or not value.strip():
        raise SchemaViolation(f"{where}: '{key}' must be a non-empty string")
    return value.strip()


def _optional_str(obj: dict, key: str) -> str:
    value = obj.get(key)
    return value.strip() if isinstance(value, str) else ""


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _require_score(obj: dict, key: str, where: str) -> float:
    value = obj.get(key)
    if not _is_number(value) or not 0 <= value <= 100:
        raise SchemaViolation(f"{where}: '{key}' must be a number between 0 and 100, got {value!r}")
    return value


def _parse_app(raw: Any, where: str) -> FeaturedApp:
    if not isinstance(raw, dict):
        raise SchemaViolation(f"{where}: app must be an object")

    rank = raw.get("rank")
    if not _is_number(rank) or not math.isfinite(rank) or rank != int(rank):
        raise SchemaViolation(f"{where}: 'rank' must be an integer, got {rank!r}")

    return FeaturedApp(
        name=_require_str(raw, "name", where),
        rank=int(rank),
        country=_optional_str(raw, "country"),
        dev_type=_optional_str(raw, "dev_type"),
        insight=_optional_str(raw, "insight"),
        flag=_optional_str(raw, "flag"),
    )


def _parse_niche(raw: dict, index: int) -> Niche:
    where = f"niche {index + 1}"
    cluster_size = raw.get("cluster_size")

    return Niche(
        name=_require_str(raw, "name", where),
        why_hot=_require_str(raw, "why_hot", where),
        gap=_require_str(raw, "gap", where),
        competition=_require_score(raw, "competition", where),
        potential=_require_score(raw, "potential", where),
        apps=[
            _parse_app(app, f"{where} app {i + 1}")
            for i, app in enumerate(raw["apps"])
        ],
        emoji=_optional_str(raw, "emoji"),
        intro=_optional_str(raw, "intro"),
        cluster_size=cluster_size if _is_number(cluster_size) else None,
    )


def parse_analysis(
    text: Optional[str],
    app_counts: tuple[int, int] = DEFAULT_APP_COUNTS,
) -> AnalysisResult:
    """
    Parse and validate raw LLM output into an AnalysisResult.

    Args:
        text: Raw response text, optionally wrapped in code fences.
        app_counts: Required number of apps in niche 1 and niche 2.

    Returns:
        The validated analysis.

    Raises:
        EmptyResponse: If there is no content.
        MalformedResponse: If the content is not a JSON object.
        SchemaViolation: If the niche/app structure is wrong.
    """
    if not text or not text.strip():
        raise EmptyResponse("No response from reasoning service")

    json_text = _strip_code_fences(text)

    try:
        data = json.loads(json_text)
    except ValueError as e:
        logger.error(f"Failed to parse AI response: {json_text[:500]}")
        raise MalformedResponse(f"Failed to parse AI response as JSON: {e}") from e

    if not isinstance(data, dict):
        raise MalformedResponse(f"Expected a JSON object, got {type(data).__name__}")

    niches = data.get("niches")
    if not isinstance(niches, list) or len(niches) != len(app_counts):
        count = len(niches) if isinstance(niches, list) else 0
        raise SchemaViolation(f"Expected exactly {len(app_counts)} niches, got {count}")

    for index, (niche, expected) in enumerate(zip(niches, app_counts)):
        if not isinstance(niche, dict):
            raise SchemaViolation(f"niche {index + 1} must be an object")
        apps = niche.get("apps")
        if not isinstance(apps, list) or len(apps) != expected:
            count = len(apps) if isinstance(apps, list) else 0
            raise SchemaViolation(
                f"Expected {expected} app(s) for niche {index + 1}, got {count}"
            )

    return AnalysisResult(
        title=_require_str(data, "title", "analysis"),
        hook=_require_str(data, "hook", "analysis"),
        niches=[_parse_niche(niche, i) for i, niche in enumerate(niches)],
        action=_require_str(data, "action", "analysis"),
        date=_optional_str(data, "date"),
    )


def analyze(
    prompt_text: str,
    reasoner: Reasoner,
    app_counts: tuple[int, int] = DEFAULT_APP_COUNTS,
    today: Optional[date] = None,
) -> AnalysisResult:
    """
    Ask the reasoning service for today's two niches.

    Args:
        prompt_text: Output of format_for_analysis().
        reasoner: Client exposing complete(prompt) -> str.
        app_counts: Required number of apps in niche 1 and niche 2.
        today: Date shown in the requested output (defaults to today).

    Returns:
        The validated analysis.

    Raises:
        AnalysisError: If the request fails or the reply is unusable.
    """
    prompt = build_prompt(prompt_text, today=today, app_counts=app_counts)
    raw_response = reasoner.complete(prompt)
    result = parse_analysis(raw_response, app_counts=app_counts)

    logger.info(f"Title: \"{result.title}\"")
    for i, niche in enumerate(result.niches, 1):
        logger.info(f"Niche {i}: {niche.name} ({len(niche.apps)} apps)")

    return result

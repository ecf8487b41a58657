"""Relevance classification of diffs with a language model."""

import json
import logging
import re
from typing import Optional, Protocol

import requests
from pydantic import AliasChoices, BaseModel, Field, ValidationError

from commit_sleuth.config import ClassifierSettings
from commit_sleuth.errors import ClassifierError

logger = logging.getLogger(__name__)

GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
DEFAULT_GEMINI_MODEL = "gemini-2.0-flash-001"
DEFAULT_MLX_MODEL = "mlx-community/Qwen2.5-Coder-1.5B-Instruct-4bit"

VERDICT_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "relevant": {"type": "BOOLEAN"},
        "explanation": {"type": "STRING"},
    },
    "required": ["relevant", "explanation"],
}

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


class RelevanceVerdict(BaseModel):
    """Whether a diff pertains to the query, and why."""

    relevant: bool
    explanation: str = Field(
        default="",
        validation_alias=AliasChoices("explanation", "diffDescription", "reason", "description"),
    )


class RelevanceClassifier(Protocol):
    def classify(self, query: str, diff: str) -> RelevanceVerdict: ...


def build_prompt(query: str, diff: str) -> str:
    return (
        "You are an expert debugger. The user is giving you a query and a diff of a file "
        "and wants to know whether the diff is relevant to the query.\n\n"
        f"The query is: {query}\n\n"
        f"The diff of the file is:\n{diff}\n\n"
        "Is the diff relevant to the query? Describe what the diff changes and how it "
        "relates to the query."
    )


def parse_verdict(text: Optional[str]) -> RelevanceVerdict:
    """Validate a JSON verdict, tolerating prose or code fences around it."""
    match = _JSON_OBJECT.search(text or "")
    if match is None:
        raise ClassifierError(f"Model response contained no JSON object: {(text or '')[:200]!r}")
    try:
        return RelevanceVerdict.model_validate_json(match.group(0))
    except ValidationError as exc:
        raise ClassifierError(f"Model response did not match the verdict shape: {exc}") from exc


class GeminiClassifier:
    """Structured-output classification through the Gemini REST API."""

    def __init__(self, api_key: str, model: Optional[str] = None, timeout: float = 30.0, session=None):
        if not api_key:
            raise ClassifierError(
                "Gemini API key not found. Set GOOGLE_GENERATIVE_AI_API_KEY or GEMINI_API_KEY."
            )
        self.api_key = api_key
        self.model = model or DEFAULT_GEMINI_MODEL
        self.timeout = timeout
        self.session = session or requests.Session()

    def classify(self, query: str, diff: str) -> RelevanceVerdict:
        payload = {
            "contents": [{"role": "user", "parts": [{"text": build_prompt(query, diff)}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": VERDICT_SCHEMA,
            },
        }
        url = GEMINI_API_URL.format(model=self.model)
        try:
            resp = self.session.post(
                url,
                params={"key": self.api_key},
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise ClassifierError(f"Request to {self.model} failed: {exc}") from exc

        if resp.status_code != 200:
            raise ClassifierError(
                f"{self.model} returned HTTP {resp.status_code}: {(resp.text or '')[:300]}"
            )
        try:
            body = resp.json()
            text = body["candidates"][0]["content"]["parts"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise ClassifierError(f"Unexpected response from {self.model}: {exc}") from exc
        return parse_verdict(text)


class MlxClassifier:
    """Local classification with mlx-lm; the model is loaded on first use."""

    def __init__(self, model: Optional[str] = None, max_tokens: int = 300):
        self.model_name = model or DEFAULT_MLX_MODEL
        self.max_tokens = max_tokens
        self._loaded = None

    def _load(self):
        if self._loaded is None:
            try:
                from mlx_lm import generate, load
            except ImportError as exc:
                raise ClassifierError("Missing dependency: mlx-lm") from exc
            model, tokenizer = load(self.model_name)
            self._loaded = (generate, model, tokenizer)
        return self._loaded

    def classify(self, query: str, diff: str) -> RelevanceVerdict:
        generate, model, tokenizer = self._load()
        prompt = (
            f"[SYSTEM]\n{build_prompt(query, diff)}\n\n"
            "Answer with a single JSON object and nothing else, shaped as:\n"
            + json.dumps({"relevant": True, "explanation": "..."})
            + "\n\n[ANSWER]"
        )
        try:
            answer = generate(model, tokenizer, prompt=prompt, max_tokens=self.max_tokens, verbose=False)
        except Exception as exc:
            raise ClassifierError(f"Local model {self.model_name} failed: {exc}") from exc
        return parse_verdict(answer)


def build_classifier(settings: ClassifierSettings) -> RelevanceClassifier:
    """Instantiate the configured backend."""
    if settings.provider == "mlx":
        logger.debug("Using local mlx model %s", settings.model or DEFAULT_MLX_MODEL)
        return MlxClassifier(model=settings.model)
    logger.debug("Using Gemini model %s", settings.model or DEFAULT_GEMINI_MODEL)
    return GeminiClassifier(api_key=settings.api_key, model=settings.model, timeout=settings.timeout)

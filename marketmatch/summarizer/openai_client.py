"""OpenAI-compatible chat completion summarizer.

Renders the recommendation prompt from package templates and POSTs it to
``{api_base}/chat/completions`` with requests. Every failure is raised as
UpstreamDependencyError; GuardedSummarizer decides what to do with it.
"""

import threading
from typing import Any, Callable, Dict, List, Optional, Sequence

import requests
from jinja2 import Environment, PackageLoader, StrictUndefined, TemplateError

from marketmatch.config.models import SummarizerConfig
from marketmatch.domain.exceptions import UpstreamDependencyError
from marketmatch.logging import get_logger
from marketmatch.matching.models import RankedCandidate

from .base import Summarizer

logger = get_logger(__name__, component="summarizer")

DEPENDENCY_NAME = "summarizer"
MAX_RECOMMENDATION_CHARACTERS = 300


class PromptRenderer:
    """Renders the system and user prompts from ``prompt_templates``."""

    def __init__(
        self,
        template_dir: str = "prompt_templates",
        system_template: str = "recommendation_system.txt.j2",
        user_template: str = "recommendation_user.txt.j2",
    ):
        self.system_template_name = system_template
        self.user_template_name = user_template
        self.env = Environment(
            loader=PackageLoader("marketmatch.summarizer", template_dir),
            autoescape=False,
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def render(self, context: Dict[str, Any]) -> List[Dict[str, str]]:
        """Render chat messages for ``context``.

        Raises:
            TemplateError: If a template is missing or references an unknown variable
        """
        system = self.env.get_template(self.system_template_name).render(**context).strip()
        user = self.env.get_template(self.user_template_name).render(**context).strip()
        return [
            {"role": "system", "content": system},
            {"role": "user", "content": user},
        ]


class OpenAIChatSummarizer(Summarizer):
    """Summarizer backed by an OpenAI-compatible ``/chat/completions`` endpoint.

    GuardedSummarizer calls ``summarize`` from several worker threads, so each
    thread gets its own session from ``session_factory``.
    """

    def __init__(
        self,
        api_key: str,
        config: Optional[SummarizerConfig] = None,
        session_factory: Callable[[], requests.Session] = requests.Session,
        renderer: Optional[PromptRenderer] = None,
    ):
        if not api_key or not api_key.strip():
            raise ValueError("api_key cannot be empty")
        self.config = config or SummarizerConfig()
        self.renderer = renderer or PromptRenderer()
        self._session_factory = session_factory
        self._headers = {
            "Authorization": f"Bearer {api_key.strip()}",
            "Content-Type": "application/json",
        }
        self._local = threading.local()

    def _get_session(self) -> requests.Session:
        session = getattr(self._local, "session", None)
        if session is None:
            session = self._session_factory()
            session.headers.update(self._headers)
            self._local.session = session
        return session

    @property
    def endpoint(self) -> str:
        return f"{self.config.api_base}/chat/completions"

    def summarize(self, description: str, top_results: Sequence[RankedCandidate]) -> Optional[str]:
        if not top_results:
            return None

        try:
            messages = self.renderer.render(
                {
                    "description": description,
                    "candidates": list(top_results),
                    "response_language": self.config.response_language,
                    "max_characters": MAX_RECOMMENDATION_CHARACTERS,
                }
            )
        except TemplateError as e:
            raise UpstreamDependencyError(DEPENDENCY_NAME, f"prompt rendering failed: {e}") from e

        body = {
            "model": self.config.model,
            "messages": messages,
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
        }

        try:
            response = self._get_session().post(self.endpoint, json=body, timeout=self.config.timeout_seconds)
        except requests.exceptions.Timeout as e:
            logger.warning(
                f"Summarizer request timed out after {self.config.timeout_seconds} seconds",
                extra={"event": "summarizer.request.timeout", "url": self.endpoint},
            )
            raise UpstreamDependencyError(DEPENDENCY_NAME, "request timed out") from e
        except requests.exceptions.RequestException as e:
            logger.warning(
                f"Summarizer request failed: {e}",
                extra={"event": "summarizer.request.error", "error_type": type(e).__name__},
            )
            raise UpstreamDependencyError(DEPENDENCY_NAME, str(e)) from e

        if response.status_code >= 400:
            logger.warning(
                f"HTTP {response.status_code} from summarizer",
                extra={"event": "summarizer.request.error", "status_code": response.status_code},
            )
            raise UpstreamDependencyError(DEPENDENCY_NAME, f"HTTP {response.status_code}: {response.reason}")

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise UpstreamDependencyError(DEPENDENCY_NAME, f"unexpected response shape: {e}") from e

        if content is None:
            return None
        if not isinstance(content, str):
            raise UpstreamDependencyError(DEPENDENCY_NAME, "message content is not text")

        logger.debug(
            "Summarizer returned a recommendation",
            extra={"event": "summarizer.request.succeeded", "candidates": len(top_results)},
        )
        return content.strip() or None

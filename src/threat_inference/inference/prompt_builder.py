"""
Prompt builder for inference requests.

Responsible for:
- Loading and rendering Jinja2 templates (system + user prompts)
- Truncating article content to the model's context budget
- Constructing the chat payloads for each analysis role (full, classifier,
  extractor, trends) and the embedding payload
"""

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, Optional, Union
from jinja2 import Environment, FileSystemLoader
import structlog

from threat_inference.inference.text_utils import truncate_text
from threat_inference.models.analysis import AnalysisResult
from threat_inference.models.article import Article
from threat_inference.models.enums import Severity, ThreatCategory


logger = structlog.get_logger(__name__)

DEFAULT_TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "prompts" / "templates"

TrendSummary = Union[AnalysisResult, Mapping[str, Any]]


class PromptBuilder:
    """
    Build chat payloads for inference calls.

    Every analysis payload has the same shape:
        {"messages": [{"role": "system", ...}, {"role": "user", ...}],
         "temperature": ..., "max_tokens": ...}
    """

    def __init__(
        self,
        templates_dir: Optional[Path] = None,
        content_truncation_limit: int = 12000,
        embedding_max_chars: int = 2000,
        analysis_temperature: float = 0.1,
        analysis_max_tokens: int = 1024,
        trends_temperature: float = 0.3,
        trends_max_tokens: int = 1024,
    ):
        """
        Initialize prompt builder.

        Args:
            templates_dir: Directory containing prompt templates (default: packaged templates)
            content_truncation_limit: Max article content characters sent to a model
            embedding_max_chars: Max characters sent to an embedding model
            analysis_temperature: Temperature for analysis calls
            analysis_max_tokens: Max output tokens for analysis calls
            trends_temperature: Temperature for the trend summary call
            trends_max_tokens: Max output tokens for the trend summary call
        """
        self.templates_dir = Path(templates_dir) if templates_dir else DEFAULT_TEMPLATES_DIR
        self.content_truncation_limit = content_truncation_limit
        self.embedding_max_chars = embedding_max_chars
        self.analysis_temperature = analysis_temperature
        self.analysis_max_tokens = analysis_max_tokens
        self.trends_temperature = trends_temperature
        self.trends_max_tokens = trends_max_tokens

        self.jinja_env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            trim_blocks=True,
            lstrip_blocks=True,
            autoescape=False  # We're generating prompts, not HTML
        )

        try:
            self.analysis_template = self.jinja_env.get_template("analysis_system.txt")
            self.classifier_template = self.jinja_env.get_template("classifier_system.txt")
            self.extractor_template = self.jinja_env.get_template("extractor_system.txt")
            self.trends_system_template = self.jinja_env.get_template("trends_system.txt")
            self.article_template = self.jinja_env.get_template("article_user.txt")
            self.trends_user_template = self.jinja_env.get_template("trends_user.txt")
            logger.info("Loaded prompt templates", templates_dir=str(self.templates_dir))
        except Exception as e:
            logger.error("Failed to load prompt templates", error=str(e))
            raise

        # Enumerations are rendered into the system prompts once
        template_vars = {
            "categories": [c.value for c in ThreatCategory],
            "severities": [s.value for s in Severity],
        }
        self.analysis_system_prompt = self.analysis_template.render(**template_vars).strip()
        self.classifier_system_prompt = self.classifier_template.render(**template_vars).strip()
        self.extractor_system_prompt = self.extractor_template.render(**template_vars).strip()
        self.trends_system_prompt = self.trends_system_template.render().strip()

    def build_user_prompt(self, article: Article) -> str:
        """Render the article as "Title / Content / Source", content truncated."""
        content = truncate_text(article.content, self.content_truncation_limit)
        if len(content) < len(article.content):
            logger.debug(
                "Truncated article content",
                article_id=article.id,
                original_length=len(article.content),
                limit=self.content_truncation_limit,
            )
        return self.article_template.render(
            title=article.title,
            content=content,
            source=article.source,
        ).strip()

    def _chat_payload(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float,
        max_tokens: int,
    ) -> dict[str, Any]:
        return {
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

    def build_analysis_payload(self, article: Article) -> dict[str, Any]:
        """Single-call payload asking for the full analysis shape."""
        return self._chat_payload(
            self.analysis_system_prompt,
            self.build_user_prompt(article),
            self.analysis_temperature,
            self.analysis_max_tokens,
        )

    def build_classifier_payload(self, article: Article) -> dict[str, Any]:
        """Payload for {tldr, category, severity, affected_sectors, threat_actors}."""
        return self._chat_payload(
            self.classifier_system_prompt,
            self.build_user_prompt(article),
            self.analysis_temperature,
            self.analysis_max_tokens,
        )

    def build_extractor_payload(self, article: Article) -> dict[str, Any]:
        """Payload for {key_points, iocs}."""
        return self._chat_payload(
            self.extractor_system_prompt,
            self.build_user_prompt(article),
            self.analysis_temperature,
            self.analysis_max_tokens,
        )

    @staticmethod
    def format_trend_line(article: Article, summary: TrendSummary) -> str:
        """
        One line of the weekly digest.

        Example:
            - [CRITICAL] ransomware: LockBit hits hospital (Hospital systems encrypted)
        """
        if isinstance(summary, AnalysisResult):
            severity, category, tldr = summary.severity.value, summary.category.value, summary.tldr
        else:
            severity = str(summary.get("severity", ""))
            category = str(summary.get("category", ""))
            tldr = str(summary.get("tldr", ""))
        return f"- [{severity.upper()}] {category}: {article.title} ({tldr})"

    def build_trends_payload(
        self,
        articles: Sequence[Article],
        summaries: Sequence[TrendSummary],
    ) -> dict[str, Any]:
        """
        Payload for the weekly trend summary.

        summaries[i] belongs to articles[i]; extra entries on either side
        are ignored.
        """
        threat_lines = [
            self.format_trend_line(article, summary)
            for article, summary in zip(articles, summaries)
        ]
        user_prompt = self.trends_user_template.render(threat_lines=threat_lines).strip()
        return self._chat_payload(
            self.trends_system_prompt,
            user_prompt,
            self.trends_temperature,
            self.trends_max_tokens,
        )

    def build_embedding_payload(self, text: str) -> dict[str, Any]:
        """Embedding input, hard-truncated (no suffix) to the embedding limit."""
        return {"text": (text or "")[:self.embedding_max_chars]}

"""Unit tests for PromptBuilder (packaged Jinja2 templates)."""

import pytest

from threat_inference.inference.prompt_builder import PromptBuilder
from threat_inference.models.analysis import AnalysisResult


class TestPromptBuilder:

    def test_user_prompt_layout(self, prompt_builder, sample_article):
        prompt = prompt_builder.build_user_prompt(sample_article)
        assert prompt.startswith(f"Title: {sample_article.title}\n\nContent: ")
        assert prompt.endswith(f"\n\nSource: {sample_article.source}")

    def test_content_truncated_with_suffix(self, create_test_article):
        builder = PromptBuilder(content_truncation_limit=10)
        article = create_test_article(content="0123456789ABCDEF")
        prompt = builder.build_user_prompt(article)
        assert "Content: 0123456789...\n" in prompt
        assert "ABCDEF" not in prompt

    def test_analysis_payload_shape(self, prompt_builder, sample_article):
        payload = prompt_builder.build_analysis_payload(sample_article)
        assert [m["role"] for m in payload["messages"]] == ["system", "user"]
        assert payload["temperature"] == 0.1
        assert payload["max_tokens"] == 1024
        system = payload["messages"][0]["content"]
        assert "Output ONLY valid JSON" in system
        assert "cloud_security" in system
        assert "critical|high|medium|low|info" in system

    def test_tiered_payloads_request_their_own_shape(self, prompt_builder, sample_article):
        classifier = prompt_builder.build_classifier_payload(sample_article)["messages"][0]["content"]
        extractor = prompt_builder.build_extractor_payload(sample_article)["messages"][0]["content"]
        assert '"severity"' in classifier and '"iocs"' not in classifier
        assert '"iocs"' in extractor and '"severity"' not in extractor

    def test_trend_lines(self, prompt_builder, create_test_article, full_analysis_data):
        articles = [
            create_test_article(article_id="a1", title="LockBit hits hospital"),
            create_test_article(article_id="a2", title="Phishing wave"),
        ]
        summaries = [
            AnalysisResult.model_validate({**full_analysis_data, "strategy": "baseline"}),
            {"severity": "medium", "category": "phishing", "tldr": "Bank lures"},
        ]
        payload = prompt_builder.build_trends_payload(articles, summaries)
        user = payload["messages"][1]["content"]
        assert f"- [CRITICAL] ransomware: LockBit hits hospital ({full_analysis_data['tldr']})" in user
        assert "- [MEDIUM] phishing: Phishing wave (Bank lures)" in user
        assert "Recommended defensive actions" in user
        assert payload["temperature"] == 0.3
        assert payload["messages"][0]["content"].startswith("You are a senior cybersecurity analyst")

    def test_embedding_payload_hard_truncated(self, prompt_builder):
        payload = prompt_builder.build_embedding_payload("x" * 5000)
        assert payload == {"text": "x" * 2000}

    def test_missing_templates_dir_fails(self, tmp_path):
        with pytest.raises(Exception):
            PromptBuilder(templates_dir=tmp_path)

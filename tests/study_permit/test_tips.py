"""Tests for study-permit/app/tips.py — static, generic and AI tips."""

from __future__ import annotations

from unittest.mock import patch

import app.tips as tips_mod
from app.config import Settings
from app.tips import STATIC_TIPS, field_feedback, format_field_name, get_tip
from shared.claude_client import ExternalServiceError

NO_AI = Settings(anthropic_api_key="")
WITH_AI = Settings(anthropic_api_key="sk-test", ai_tip_timeout=2.0)


# ── Static and generic tips ──────────────────────────────────────────────


class TestStaticTips:
    def test_known_field(self):
        result = get_tip("dli", settings=NO_AI)
        assert result["source"] == "static"
        assert result["tip"] is STATIC_TIPS["dli"]
        assert result["staticTip"] is STATIC_TIPS["dli"]

    def test_unknown_field_gets_generic_tip(self):
        result = get_tip("homeTown", settings=NO_AI)
        assert result["source"] == "generic"
        assert result["staticTip"] is None
        assert result["tip"]["title"] == "Guidance for Home Town"

    def test_use_ai_without_key_is_static(self):
        with patch.object(tips_mod, "generate_text") as generate:
            result = get_tip("passport", use_ai=True, settings=NO_AI)
        generate.assert_not_called()
        assert result["source"] == "static"

    def test_format_field_name(self):
        assert format_field_name("letterOfAcceptance") == "Letter Of Acceptance"
        assert format_field_name("dli") == "Dli"


# ── AI tips ──────────────────────────────────────────────────────────────


class TestAiTips:
    def test_ai_tip(self, complete_form):
        with patch.object(tips_mod, "generate_text", return_value="Use the DLI list.") as generate:
            result = get_tip("dli", complete_form, use_ai=True, settings=WITH_AI)

        assert result["source"] == "ai"
        assert result["tip"]["tip"] == "Use the DLI list."
        assert result["tip"]["title"] == "AI Guidance: Dli"
        assert result["staticTip"] is STATIC_TIPS["dli"]
        assert generate.call_args.kwargs["timeout"] == 2.0
        assert generate.call_args.kwargs["api_key"] == "sk-test"

    def test_prompt_leaves_out_personal_data(self, complete_form):
        with patch.object(tips_mod, "generate_text", return_value="ok") as generate:
            get_tip("studyPlan", complete_form, use_ai=True, settings=WITH_AI)

        prompt = generate.call_args.args[1]
        assert "citizenship=India" in prompt
        assert "fieldOfStudy=Computer Science" in prompt
        for private in ("Smith", "John", "K1234567", "john.smith@example.com", "1995-03-15"):
            assert private not in prompt

    def test_service_failure_falls_back_to_static(self):
        with patch.object(tips_mod, "generate_text", side_effect=ExternalServiceError("timed out")) as generate:
            result = get_tip("proofOfFunds", use_ai=True, settings=WITH_AI)

        assert generate.call_count == 1
        assert result["source"] == "static"
        assert result["tip"] is STATIC_TIPS["proofOfFunds"]

    def test_service_failure_for_unknown_field_is_generic(self):
        with patch.object(tips_mod, "generate_text", side_effect=ExternalServiceError("down")):
            result = get_tip("homeTown", use_ai=True, settings=WITH_AI)
        assert result["source"] == "generic"


# ── Field feedback ───────────────────────────────────────────────────────


class TestFieldFeedback:
    def test_valid_dli(self):
        result = field_feedback("dli", "O19391173552")
        assert result["path"] == "studyDetails.dliNumber"
        assert result["validation"] == {"isValid": True, "errors": [], "warnings": []}
        assert result["tip"] is STATIC_TIPS["dli"]
        assert result["suggestions"] == []

    def test_malformed_dli(self):
        result = field_feedback("dli", "12345")
        assert result["validation"]["isValid"] is False
        assert result["suggestions"][0]["type"] == "error"

    def test_empty_dli_gets_hint(self):
        result = field_feedback("dli", "")
        types = [s["type"] for s in result["suggestions"]]
        assert types == ["error", "info"]

    def test_low_funds_warning(self, complete_form):
        result = field_feedback("proofOfFunds", "50000", complete_form)
        assert result["validation"]["isValid"] is True
        assert result["suggestions"] == []

        result = field_feedback("proofOfFunds", "15000", {})
        assert result["validation"]["isValid"] is True
        assert result["validation"]["warnings"] == ["Enter your tuition so the funds check can include it"]
        assert [s["type"] for s in result["suggestions"]] == ["warning"]

    def test_funds_checked_against_record_tuition(self, complete_form):
        result = field_feedback("proofOfFunds", "40000", complete_form)
        assert result["validation"]["isValid"] is False

    def test_record_path_accepted(self, complete_form):
        result = field_feedback("contactInfo.email", "not-an-email", complete_form)
        assert result["path"] == "contactInfo.email"
        assert result["validation"]["errors"] == ["Please enter a valid email address"]
        assert result["tip"] is None

    def test_unknown_field_required(self):
        result = field_feedback("favouriteColour", "")
        assert result["validation"]["errors"] == ["Favourite Colour is required"]
        assert field_feedback("favouriteColour", "blue")["validation"]["isValid"] is True

"""Tests for model-free utterance classification."""

import pytest

from docpilot.routing.heuristics import (
    Confirmation,
    derive_title,
    is_completion,
    looks_like_kickoff,
    looks_like_revision,
    parse_confirmation,
)


class TestKickoff:
    @pytest.mark.parametrize(
        "text",
        [
            "I want to create a new product requirements document for our mobile app",
            "this will be a project that will train local models for Forex trading",
            "this will be a project for algo trading docs",
            "Let's build a platform for tracking warehouse inventory in real time",
            "switch to a new spec document for deployment hardening",
            "We need to write a design document for the payments service",
        ],
    )
    def test_new_deliverables(self, text):
        assert looks_like_kickoff(text)

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "yes",
            "no",
            "ok",
            "thanks",
            "done",
            "fix this",
            "ok thanks, yes please",
            "what architectural patterns do you use?",
            "how should I prioritize risk controls?",
            "hello there, help me think this through",
            "fix the issues found in the document from the review",
        ],
    )
    def test_ordinary_conversation(self, text):
        assert not looks_like_kickoff(text)

    def test_min_words_is_tunable(self):
        text = "create a new app"
        assert not looks_like_kickoff(text)
        assert looks_like_kickoff(text, min_words=3)


class TestRevision:
    @pytest.mark.parametrize(
        "text",
        [
            "fix the issues found in the document from the review",
            "fix the issues found in the document",
            "please update the risk section",
            "address the reviewer feedback",
            "can you update the spec with the new limits?",
        ],
    )
    def test_revision_language(self, text):
        assert looks_like_revision(text)

    @pytest.mark.parametrize(
        "text",
        [
            "done",
            "what is a PRD?",
            "I want to create a new design document for the billing system",
            "thanks",
            "fix this",
            "How do I fix this error in my Python script?",
            "fix the issues in my code",
            "could the design change later?",
        ],
    )
    def test_not_revision(self, text):
        assert not looks_like_revision(text)


class TestCompletion:
    @pytest.mark.parametrize("text", ["done", "Done", "/done", "done!", "finished", "that's it", "looks good."])
    def test_completion(self, text):
        assert is_completion(text)

    @pytest.mark.parametrize("text", ["done with the intro, now add risks", "not done", "", "complete the risk section"])
    def test_not_completion(self, text):
        assert not is_completion(text)


class TestConfirmation:
    @pytest.mark.parametrize("text", ["yes", "Yes please", "y", "ok", "sure, go ahead", "go ahead"])
    def test_affirmative(self, text):
        assert parse_confirmation(text) is Confirmation.AFFIRMATIVE

    @pytest.mark.parametrize("text", ["no", "No thanks", "nope", "cancel", "keep the current one"])
    def test_negative(self, text):
        assert parse_confirmation(text) is Confirmation.NEGATIVE

    @pytest.mark.parametrize("text", ["what do you mean?", "tell me more about the design doc", "yesterday we decided"])
    def test_neither(self, text):
        assert parse_confirmation(text) is None


class TestDeriveTitle:
    def test_uses_subject_after_for(self):
        assert derive_title("switch to a new spec document for deployment hardening") == "Deployment Hardening"

    def test_falls_back_to_leading_words(self):
        assert derive_title("mobile banking onboarding revamp") == "Mobile Banking Onboarding Revamp"

    def test_caps_length(self):
        title = derive_title("one two three four five six seven eight nine ten", max_words=4)
        assert title == "One Two Three Four"

    def test_empty(self):
        assert derive_title("   ") == "New Document"

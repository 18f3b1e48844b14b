"""Tests for squadboard.lib.validate module."""

from pathlib import Path

import pytest

from squadboard.board.card import Card
from squadboard.lib.validate import ValidationError, is_valid, validate, validate_before_write


def card_dict(**overrides):
    data = Card(id="aaaaaaaaaaaa", project_id="demo", squad_id="core", body="x", title="x").to_dict()
    data.update(overrides)
    return data


class TestCardSchema:

    def test_new_card_is_valid(self):
        validate(card_dict(), "card")

    def test_bad_lane_reports_path(self):
        with pytest.raises(ValidationError) as exc:
            validate(card_dict(lane="shipping"), "card")
        assert exc.value.path == "lane"
        assert exc.value.schema_name == "card"

    def test_unknown_field(self):
        assert not is_valid(card_dict(colour="red"), "card")

    def test_issue_ref_soft_state(self):
        ref = {"repo": "a/b", "number": 1, "soft_state": "closed"}
        assert not is_valid(card_dict(issue_refs=[ref]), "card")
        ref["soft_state"] = "soft_closed"
        assert is_valid(card_dict(issue_refs=[ref]), "card")

    def test_validate_before_write_names_file(self):
        with pytest.raises(ValidationError, match="Refusing to write aaaaaaaaaaaa.json"):
            validate_before_write(card_dict(position=-1), "card", Path("/home/cards/aaaaaaaaaaaa.json"))


class TestArtifactSchemas:

    def test_issue_plan(self):
        assert is_valid({"issues": [{"title": "Add login"}]}, "issue_plan")
        assert not is_valid({"issues": [{"title": ""}]}, "issue_plan")
        assert not is_valid({"repo": "a/b"}, "issue_plan")

    def test_build_result(self):
        assert is_valid({"pr_url": "https://github.com/a/b/pull/1", "tests": []}, "build_result")
        assert not is_valid({"notes": "no pr"}, "build_result")

    def test_ai_review(self):
        assert is_valid({"recommendation": "approve", "risk": "low"}, "ai_review")
        assert not is_valid({"summary": "ok"}, "ai_review")

    def test_unknown_schema(self):
        with pytest.raises(ValidationError, match="Schema file not found"):
            validate({}, "nope")

"""Tests for the Clarity Snapshot HTTP endpoints."""

from unittest.mock import patch

from fastapi.testclient import TestClient

from app.main import app

client = TestClient(app)

VALID_SELECTIONS = {
    "presenceChannels": ["word_of_mouth"],
    "teamShape": "solo_or_one_helper",
    "scheduling": "head_notebook",
    "invoicing": "paper_verbal",
    "callHandling": "personal_phone",
    "businessFeeling": "reactive_all_the_time",
}


def _post(payload):
    return client.post("/v1/clarity-snapshot", json=payload)


@patch("app.chains.generate_snapshot_panes.provider_is_configured", return_value=False)
class TestCreateClaritySnapshot:
    def test_returns_camel_case_snapshot(self, mock_configured):
        response = _post({"selections": VALID_SELECTIONS})

        assert response.status_code == 200
        data = response.json()
        assert set(data["panes"]) >= {"whatsHappening", "whatItCosts", "whatToFixFirst"}
        assert data["panes"]["correctionPrompt"]["question"] == "Which describes your situation better?"
        assert data["classification"]["topArchetype"] == "reactive_solo_operator"
        assert data["classification"]["topStage"] == "operator"
        assert data["classification"]["confidence"] == 52
        assert data["metadata"]["narrativeSource"] == "fallback"
        assert data["metadata"]["cacheHit"] is False
        # nothing to enrich, so these are omitted
        assert "evidenceNuggets" not in data
        assert "enrichmentDurationMs" not in data["metadata"]

    def test_second_identical_request_hits_cache(self, mock_configured):
        _post({"selections": VALID_SELECTIONS})
        response = _post({"selections": VALID_SELECTIONS})

        assert response.status_code == 200
        assert response.json()["metadata"]["cacheHit"] is True

    def test_accepts_snake_case_fields(self, mock_configured):
        selections = {
            "presence_channels": ["website"],
            "team_shape": "growing_6_15",
            "scheduling": "job_software",
            "invoicing": "job_software",
            "call_handling": "someone_screens",
            "business_feeling": "dont_trust_numbers",
        }

        response = _post({"selections": selections, "business_name": "Acme"})

        assert response.status_code == 200

    def test_unknown_enum_value_is_rejected(self, mock_configured):
        response = _post({"selections": {**VALID_SELECTIONS, "teamShape": "army"}})

        assert response.status_code == 422

    def test_missing_field_is_rejected(self, mock_configured):
        selections = {k: v for k, v in VALID_SELECTIONS.items() if k != "businessFeeling"}

        response = _post({"selections": selections})

        assert response.status_code == 422

    def test_empty_presence_channels_are_rejected(self, mock_configured):
        response = _post({"selections": {**VALID_SELECTIONS, "presenceChannels": []}})

        assert response.status_code == 422

    def test_unexpected_selection_key_is_rejected(self, mock_configured):
        response = _post({"selections": {**VALID_SELECTIONS, "revenue": "1m"}})

        assert response.status_code == 422

    def test_missing_selections_is_rejected(self, mock_configured):
        response = _post({"businessName": "Acme"})

        assert response.status_code == 422

    @patch("app.api.clarity_snapshot.run_clarity_snapshot", side_effect=RuntimeError("db down"))
    def test_unexpected_failure_returns_500(self, mock_run, mock_configured):
        response = _post({"selections": VALID_SELECTIONS})

        assert response.status_code == 500
        assert response.json()["detail"] == "Clarity Snapshot analysis failed"


class TestClearCache:
    @patch("app.chains.generate_snapshot_panes.provider_is_configured", return_value=False)
    def test_clear_cache(self, mock_configured):
        _post({"selections": VALID_SELECTIONS})

        response = client.delete("/v1/clarity-snapshot/cache")

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Cache cleared"}
        assert _post({"selections": VALID_SELECTIONS}).json()["metadata"]["cacheHit"] is False

"""
Tests for the autopilot REST API.

Uses the Flask test client against a provider backed by a recording
command sender.
"""

import math
import pytest

from navpilot.server import create_app, API_ROOT


@pytest.fixture
def client(provider):
    app = create_app(provider)
    app.config["TESTING"] = True
    return app.test_client()


def url(path: str = "", device_id: str = "711c") -> str:
    return f"{API_ROOT}/{device_id}{path}"


class TestReads:
    """Tests for GET endpoints."""

    def test_get_data(self, client):
        """Test the full autopilot data endpoint."""
        response = client.get(url())

        assert response.status_code == 200
        data = response.get_json()
        assert data["mode"] == "standby"
        assert data["options"]["states"] == ["enabled", "disabled"]

    def test_default_device(self, client):
        """Test the default device id route."""
        response = client.get(url("/mode", device_id="_default"))

        assert response.status_code == 200
        assert response.get_json() == {"value": "standby"}

    def test_unknown_device_404(self, client):
        """Test that an unknown device returns 404."""
        response = client.get(url("/state", device_id="other"))

        assert response.status_code == 404
        body = response.get_json()
        assert body["state"] == "FAILED"
        assert "other" in body["message"]


class TestCommands:
    """Tests for PUT/POST endpoints."""

    def test_set_mode(self, client, provider, sent):
        """Test setting the mode over HTTP."""
        response = client.put(url("/mode"), json={"value": "auto"})

        assert response.status_code == 200
        assert response.get_json()["state"] == "COMPLETED"
        assert provider.get_mode() == "auto"
        assert sent[-1]["fields"] == {"Command": "SetMode", "Mode": 1}

    def test_invalid_mode_400(self, client):
        """Test that an invalid mode returns 400."""
        response = client.put(url("/mode"), json={"value": "warp"})

        assert response.status_code == 400

    def test_set_target(self, client, provider):
        """Test setting the target over HTTP."""
        client.put(url("/mode"), json={"value": "auto"})

        response = client.put(url("/target"), json={"value": math.pi})

        assert response.status_code == 200
        assert provider.get_target() == pytest.approx(math.pi)

    @pytest.mark.parametrize("body", [None, {}, {"value": "north"}, {"value": True}])
    def test_target_requires_number(self, client, body):
        """Test that a missing or non-numeric value returns 400."""
        response = client.put(url("/target"), json=body)

        assert response.status_code == 400

    def test_bad_device_checked_before_body(self, client):
        """Test that the device is checked before the body."""
        response = client.put(url("/target", device_id="other"), json={})

        assert response.status_code == 404

    def test_adjust_target(self, client, provider):
        """Test adjusting the target over HTTP."""
        client.put(url("/target"), json={"value": 1.0})

        client.put(url("/target/adjust"), json={"value": 0.5})

        assert provider.get_target() == pytest.approx(1.5)

    def test_set_state(self, client, provider):
        """Test disabling over HTTP."""
        client.put(url("/mode"), json={"value": "route"})

        response = client.put(url("/state"), json={"value": "disabled"})

        assert response.status_code == 200
        assert provider.get_mode() == "standby"

    def test_engage_disengage(self, client, provider):
        """Test engage and disengage endpoints."""
        assert client.post(url("/engage")).status_code == 200
        assert provider.get_mode() == "auto"

        assert client.post(url("/disengage")).status_code == 200
        assert provider.get_mode() == "standby"

    def test_tack_precondition_409(self, client, sent):
        """Test that tack outside wind mode returns 409."""
        response = client.post(url("/tack/port"))

        assert response.status_code == 409
        assert sent == []

    def test_tack_in_wind(self, client, sent):
        """Test gybe in wind mode over HTTP."""
        client.put(url("/mode"), json={"value": "wind"})

        response = client.post(url("/gybe/starboard"))

        assert response.status_code == 200
        assert sent[-1]["fields"] == {"Command": "Gybe", "Direction": 1}

    def test_tack_unsupported_501(self, store, commands):
        """Test that an unsupported tack returns 501."""
        from navpilot.control.modes import TackPolicy
        from navpilot.control.provider import AutopilotProvider, ProviderConfig

        provider = AutopilotProvider(
            store, commands, ProviderConfig(device_id="711c", tack_policy=TackPolicy.UNSUPPORTED)
        )
        client = create_app(provider).test_client()

        response = client.post(url("/tack/port"))

        assert response.status_code == 501

    def test_dodge(self, client, sent):
        """Test the dodge endpoint."""
        response = client.post(url("/dodge"), json={"value": math.radians(5)})

        assert response.status_code == 200
        assert sent[-1]["fields"]["Adjustment"] == pytest.approx(5.0)


class TestNonFiniteBody:
    """JSON bodies carrying NaN or Infinity."""

    @pytest.mark.parametrize("path", ["/target", "/target/adjust"])
    @pytest.mark.parametrize("literal", ["NaN", "Infinity", "-Infinity"])
    def test_rejected(self, client, provider, path, literal):
        """Test that non-finite numbers are rejected and the target stays valid JSON."""
        response = client.put(
            url(path), data=f'{{"value": {literal}}}', content_type="application/json"
        )

        assert response.status_code == 400
        assert provider.get_target() == 0.0
        assert b"NaN" not in client.get(url("/target")).get_data()

    def test_dodge_rejected(self, client, sent):
        """Test that a non-finite dodge is rejected before sending."""
        response = client.post(url("/dodge"), data='{"value": NaN}', content_type="application/json")

        assert response.status_code == 400
        assert sent == []

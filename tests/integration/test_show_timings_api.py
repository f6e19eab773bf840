"""
Integration tests for show timing endpoints.

Tests cover:
- Weekday and weekend templates (create, replace, list)
- Special timings per date, duplicates, updates and deletes
- Showtimes available on a day
- Owner isolation and token requirements
"""

import pytest

from tests.integration.conftest import API

# 2026-12-25 is a Friday, 2026-12-26 a Saturday
FRIDAY = "2026-12-25"
SATURDAY = "2026-12-26"


@pytest.fixture
def owner_id(client, owner_headers):
    response = client.get(f"{API}/theatre-owner/me", headers=owner_headers)
    return response.json()["data"]["theatreOwner"]["_id"]


def timings_url(owner_id, suffix=""):
    return f"{API}/show-timings/owner/{owner_id}{suffix}"


def add_special(client, headers, owner_id, special_date=FRIDAY, timings=("23:30",), description="Midnight premiere"):
    return client.post(
        timings_url(owner_id, "/special"),
        json={"timings": list(timings), "specialDate": special_date, "description": description},
        headers=headers,
    )


# ============================================================================
# TEMPLATES
# ============================================================================


class TestTemplates:
    """Test weekday and weekend timing templates."""

    def test_save_weekday(self, client, owner_headers, owner_id):
        response = client.post(
            timings_url(owner_id, "/weekday"), json={"timings": ["10:00", "14:00"]}, headers=owner_headers
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["type"] == "weekday"
        assert data["timings"] == ["10:00", "14:00"]
        assert data["isActive"] is True
        assert data["theatreOwnerId"] == owner_id

    def test_save_replaces(self, client, db, owner_headers, owner_id):
        """Test saving a template twice keeps a single document."""
        client.post(timings_url(owner_id, "/weekend"), json={"timings": ["09:00"]}, headers=owner_headers)
        response = client.post(
            timings_url(owner_id, "/weekend"), json={"timings": ["11:00", "20:00"]}, headers=owner_headers
        )
        assert response.json()["data"]["timings"] == ["11:00", "20:00"]
        assert len(db.timings.collection.documents) == 1

    def test_list(self, client, owner_headers, owner_id):
        """Test listing orders specials before the weekday and weekend templates."""
        client.post(timings_url(owner_id, "/weekend"), json={"timings": ["09:00"]}, headers=owner_headers)
        client.post(timings_url(owner_id, "/weekday"), json={"timings": ["10:00"]}, headers=owner_headers)
        add_special(client, owner_headers, owner_id)
        response = client.get(timings_url(owner_id), headers=owner_headers)
        assert response.status_code == 200
        assert [timing["type"] for timing in response.json()["data"]] == ["special", "weekday", "weekend"]

    def test_timings_must_be_a_list(self, client, owner_headers, owner_id):
        response = client.post(timings_url(owner_id, "/weekday"), json={"timings": "10:00"}, headers=owner_headers)
        assert response.status_code == 400
        assert response.json()["success"] is False


# ============================================================================
# SPECIAL TIMINGS
# ============================================================================


class TestSpecialTimings:
    """Test date-specific timings."""

    def test_create(self, client, owner_headers, owner_id):
        response = add_special(client, owner_headers, owner_id)
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["type"] == "special"
        assert data["specialDate"].startswith(FRIDAY)
        assert data["description"] == "Midnight premiere"

    def test_duplicate_date(self, client, owner_headers, owner_id):
        add_special(client, owner_headers, owner_id)
        response = add_special(client, owner_headers, owner_id, timings=("06:00",))
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Special timing already exists for this date"}

    def test_same_date_for_two_owners(self, client, owner_headers, other_owner_headers, owner_id):
        add_special(client, owner_headers, owner_id)
        me = client.get(f"{API}/theatre-owner/me", headers=other_owner_headers).json()
        other_id = me["data"]["theatreOwner"]["_id"]
        assert add_special(client, other_owner_headers, other_id).status_code == 201

    def test_invalid_date(self, client, owner_headers, owner_id):
        response = add_special(client, owner_headers, owner_id, special_date="next friday")
        assert response.status_code == 400

    def test_update(self, client, owner_headers, owner_id):
        """Test an update without a description keeps the old one."""
        timing_id = add_special(client, owner_headers, owner_id).json()["data"]["_id"]
        response = client.put(
            f"{API}/show-timings/special/{timing_id}", json={"timings": ["22:00", "23:59"]}, headers=owner_headers
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["timings"] == ["22:00", "23:59"]
        assert data["description"] == "Midnight premiere"

    def test_update_description(self, client, owner_headers, owner_id):
        timing_id = add_special(client, owner_headers, owner_id).json()["data"]["_id"]
        response = client.put(
            f"{API}/show-timings/special/{timing_id}",
            json={"timings": ["22:00"], "description": "Fan screening"},
            headers=owner_headers,
        )
        assert response.json()["data"]["description"] == "Fan screening"

    def test_update_other_owners_timing(self, client, owner_headers, other_owner_headers, owner_id):
        """Test another owner's special timing is reported as missing."""
        timing_id = add_special(client, owner_headers, owner_id).json()["data"]["_id"]
        response = client.put(
            f"{API}/show-timings/special/{timing_id}", json={"timings": ["01:00"]}, headers=other_owner_headers
        )
        assert response.status_code == 404
        assert response.json()["error"] == "Special timing not found"

    def test_delete(self, client, db, owner_headers, owner_id):
        timing_id = add_special(client, owner_headers, owner_id).json()["data"]["_id"]
        response = client.delete(f"{API}/show-timings/special/{timing_id}", headers=owner_headers)
        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Special timing deleted"}
        assert db.timings.collection.documents == []

    def test_delete_missing(self, client, owner_headers, owner_id):
        timing_id = add_special(client, owner_headers, owner_id).json()["data"]["_id"]
        client.delete(f"{API}/show-timings/special/{timing_id}", headers=owner_headers)
        response = client.delete(f"{API}/show-timings/special/{timing_id}", headers=owner_headers)
        assert response.status_code == 404

    def test_delete_template_through_special_route(self, client, owner_headers, owner_id):
        """Test weekday and weekend templates cannot be deleted as specials."""
        template_id = client.post(
            timings_url(owner_id, "/weekday"), json={"timings": ["10:00"]}, headers=owner_headers
        ).json()["data"]["_id"]
        response = client.delete(f"{API}/show-timings/special/{template_id}", headers=owner_headers)
        assert response.status_code == 404


# ============================================================================
# AVAILABLE TIMINGS
# ============================================================================


class TestAvailableTimings:
    """Test the showtimes offered on one day."""

    @pytest.fixture(autouse=True)
    def templates(self, client, owner_headers, owner_id):
        client.post(timings_url(owner_id, "/weekday"), json={"timings": ["18:00", "10:00"]}, headers=owner_headers)
        client.post(timings_url(owner_id, "/weekend"), json={"timings": ["09:00", "12:00"]}, headers=owner_headers)

    def test_weekday(self, client, owner_headers, owner_id):
        """Test a weekday merges the weekday template with that day's specials."""
        special_id = add_special(client, owner_headers, owner_id, timings=("23:30", "10:00")).json()["data"]["_id"]
        response = client.get(timings_url(owner_id, f"/available/{FRIDAY}"), headers=owner_headers)
        assert response.status_code == 200
        assert response.json()["data"] == {
            "date": FRIDAY,
            "dayType": "weekday",
            "baseTimings": ["18:00", "10:00"],
            "specialTimings": [
                {"id": special_id, "timings": ["23:30", "10:00"], "description": "Midnight premiere"}
            ],
            "allAvailable": ["10:00", "18:00", "23:30"],
        }

    def test_weekend(self, client, owner_headers, owner_id):
        """Test a Saturday uses the weekend template and ignores other days' specials."""
        add_special(client, owner_headers, owner_id, special_date=FRIDAY)
        data = client.get(timings_url(owner_id, f"/available/{SATURDAY}"), headers=owner_headers).json()["data"]
        assert data["dayType"] == "weekend"
        assert data["specialTimings"] == []
        assert data["allAvailable"] == ["09:00", "12:00"]

    def test_malformed_date(self, client, owner_headers, owner_id):
        response = client.get(timings_url(owner_id, "/available/2026-13-40"), headers=owner_headers)
        assert response.status_code == 400


# ============================================================================
# ACCESS
# ============================================================================


class TestTimingAccess:
    """Test owners only reach their own timings."""

    def test_other_owner_rejected(self, client, other_owner_headers, owner_id):
        response = client.get(timings_url(owner_id), headers=other_owner_headers)
        assert response.status_code == 403
        assert response.json() == {"success": False, "error": "Not authorized"}

    def test_other_owner_cannot_save(self, client, db, other_owner_headers, owner_id):
        response = client.post(
            timings_url(owner_id, "/weekday"), json={"timings": ["10:00"]}, headers=other_owner_headers
        )
        assert response.status_code == 403
        assert db.timings.collection.documents == []

    def test_requires_token(self, client, owner_id):
        assert client.get(timings_url(owner_id)).status_code == 401

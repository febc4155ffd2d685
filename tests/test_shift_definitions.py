"""Shift definition tests."""

import pytest

from staff_roster.services.shift_definition_service import calculate_duration_hours

SHIFTS = "/api/v1/shift-definitions"


@pytest.mark.parametrize(
    "start, end, hours",
    [
        ("08:00", "17:00", 9.0),
        ("17:00", "02:00", 9.0),
        ("22:30", "06:00", 7.5),
        ("09:00", "09:00", 0.0),
        ("10:00", "10:20", 0.3),
    ],
)
def test_calculate_duration_hours(start, end, hours):
    assert calculate_duration_hours(start, end) == hours


class TestShiftDefinitions:

    def test_defaults_in_display_order(self, client, picker_headers):
        response = client.get(SHIFTS, headers=picker_headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert [(s["name"], s["startTime"], s["endTime"]) for s in data] == [
            ("Morning Shift", "08:00", "17:00"),
            ("Evening Shift", "17:00", "02:00"),
        ]
        assert [s["shiftType"] for s in data] == ["morning", "evening"]
        assert data[1]["durationHours"] == 9.0

    def test_create_overnight_shift(self, client, manager_headers):
        response = client.post(
            SHIFTS, headers=manager_headers, json={"name": "Night Shift", "startTime": "22:00", "endTime": "06:00"},
        )
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["durationHours"] == 8.0
        assert data["shiftType"] is None
        assert data["displayOrder"] == 3

    def test_shift_type_inferred_from_name(self, client, manager_headers):
        response = client.post(
            SHIFTS,
            headers=manager_headers,
            json={"name": "Early Morning Overflow", "startTime": "05:00", "endTime": "09:00"},
        )
        assert response.json()["data"]["shiftType"] == "morning"

    def test_duration_limit(self, client, manager_headers):
        response = client.post(
            SHIFTS, headers=manager_headers, json={"name": "Long", "startTime": "08:00", "endTime": "19:00"},
        )
        assert response.status_code == 400
        assert response.json()["error"]["details"]["durationHours"] == 11.0

    def test_duplicate_name(self, client, manager_headers):
        response = client.post(
            SHIFTS, headers=manager_headers, json={"name": "morning shift", "startTime": "08:00", "endTime": "12:00"},
        )
        assert response.status_code == 400

    def test_update_recomputes_duration(self, client, manager_headers):
        shift = client.get(SHIFTS, headers=manager_headers).json()["data"][0]
        response = client.put(f"{SHIFTS}/{shift['id']}", headers=manager_headers, json={"endTime": "15:00"})
        assert response.status_code == 200
        assert response.json()["data"]["durationHours"] == 7.0

        too_long = client.put(f"{SHIFTS}/{shift['id']}", headers=manager_headers, json={"startTime": "04:00"})
        assert too_long.status_code == 400

    def test_delete_is_soft(self, client, manager_headers):
        shift = client.get(SHIFTS, headers=manager_headers).json()["data"][1]
        response = client.delete(f"{SHIFTS}/{shift['id']}", headers=manager_headers)
        assert response.json()["data"]["isActive"] is False
        active = client.get(SHIFTS, headers=manager_headers).json()["data"]
        assert [s["name"] for s in active] == ["Morning Shift"]
        everything = client.get(SHIFTS, headers=manager_headers, params={"includeInactive": True}).json()["data"]
        assert len(everything) == 2

    def test_deleted_shift_can_be_recreated(self, client, manager_headers):
        evening = client.get(SHIFTS, headers=manager_headers).json()["data"][1]
        client.delete(f"{SHIFTS}/{evening['id']}", headers=manager_headers)

        response = client.post(
            SHIFTS, headers=manager_headers, json={"name": "Evening Shift", "startTime": "14:00", "endTime": "22:00"},
        )
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["id"] == evening["id"]
        assert data["isActive"] is True
        assert data["startTime"] == "14:00"
        assert data["durationHours"] == 8.0
        active = client.get(SHIFTS, headers=manager_headers).json()["data"]
        assert [s["name"] for s in active] == ["Morning Shift", "Evening Shift"]

    def test_initialize_restores_deleted_default(self, client, manager_headers):
        morning = client.get(SHIFTS, headers=manager_headers).json()["data"][0]
        client.delete(f"{SHIFTS}/{morning['id']}", headers=manager_headers)

        response = client.post(f"{SHIFTS}/initialize", headers=manager_headers)
        data = response.json()["data"]
        assert data["count"] == 1
        assert data["created"][0]["id"] == morning["id"]
        assert data["created"][0]["isActive"] is True
        names = {s["name"] for s in client.get(SHIFTS, headers=manager_headers).json()["data"]}
        assert names == {"Morning Shift", "Evening Shift"}

    def test_reorder(self, client, manager_headers):
        ids = [s["id"] for s in client.get(SHIFTS, headers=manager_headers).json()["data"]]
        response = client.post(f"{SHIFTS}/reorder", headers=manager_headers, json={"shiftIds": ids[::-1]})
        assert response.status_code == 200
        assert [s["id"] for s in response.json()["data"]] == ids[::-1]
        assert [s["displayOrder"] for s in response.json()["data"]] == [1, 2]

    def test_reorder_unknown_id(self, client, manager_headers):
        response = client.post(f"{SHIFTS}/reorder", headers=manager_headers, json={"shiftIds": [999]})
        assert response.status_code == 400
        assert response.json()["error"]["details"]["shiftIds"] == [999]

    def test_initialize_only_creates_missing(self, client, manager_headers):
        response = client.post(f"{SHIFTS}/initialize", headers=manager_headers)
        assert response.json()["data"]["count"] == 0

        morning = client.get(SHIFTS, headers=manager_headers).json()["data"][0]
        client.put(f"{SHIFTS}/{morning['id']}", headers=manager_headers, json={"name": "Day Shift"})
        response = client.post(f"{SHIFTS}/initialize", headers=manager_headers)
        data = response.json()["data"]
        assert data["count"] == 1
        assert data["created"][0]["name"] == "Morning Shift"

    def test_requires_permission(self, client, si_headers, picker_headers):
        body = {"name": "Mid Shift", "startTime": "12:00", "endTime": "20:00"}
        assert client.post(SHIFTS, headers=si_headers, json=body).status_code == 403
        assert client.post(SHIFTS, headers=picker_headers, json=body).status_code == 403

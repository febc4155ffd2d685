"""Roster planning, publishing, deletion and availability tests."""

from datetime import date, timedelta

from sqlalchemy.exc import OperationalError

from staff_roster.models.audit import AuditLogEntry
from staff_roster.models.roster import Roster, RosterDeletion

ROSTERS = "/api/v1/rosters"


def _tomorrow() -> date:
    return date.today() + timedelta(days=1)


def _payload(user_ids, shift_name="Morning Shift", roster_date=None, **extra):
    body = {
        "date": (roster_date or _tomorrow()).isoformat(),
        "shiftName": shift_name,
        "slots": [{"userId": uid} for uid in user_ids],
    }
    body.update(extra)
    return body


class TestUpsertRoster:

    def test_create_returns_201_with_coverage(self, client, picker, manager_headers):
        response = client.post(ROSTERS, headers=manager_headers, json=_payload([picker.id]))
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["status"] == "draft"
        assert data["shiftType"] == "morning"
        assert data["coverage"]["filledSlots"] == 1
        assert data["coverage"]["minRequiredStaff"] == 3
        assert data["coverage"]["coveragePercentage"] == 33.3
        assert data["coverage"]["warnings"]
        # Slot times default to the shift definition
        assert data["slots"][0]["startTime"] == "08:00"
        assert data["slots"][0]["endTime"] == "17:00"
        assert data["slots"][0]["user"]["firstName"] == "Priya"

    def test_second_save_replaces_slots(self, client, db_session, make_user, manager_headers):
        staff = [make_user() for _ in range(3)]
        first = client.post(ROSTERS, headers=manager_headers, json=_payload([staff[0].id]))
        second = client.post(ROSTERS, headers=manager_headers, json=_payload([u.id for u in staff]))
        assert second.status_code == 200
        data = second.json()["data"]
        assert data["id"] == first.json()["data"]["id"]
        assert len(data["slots"]) == 3
        assert data["coverage"]["coveragePercentage"] == 100.0
        assert db_session.query(Roster).count() == 1
        actions = [e.action for e in db_session.query(AuditLogEntry).filter_by(entity_type="roster")]
        assert actions.count("CREATE_ROSTER") == 1
        assert actions.count("UPDATE_ROSTER") == 1

    def test_shift_name_match_is_case_insensitive(self, client, picker, manager_headers):
        first = client.post(ROSTERS, headers=manager_headers, json=_payload([picker.id]))
        second = client.post(ROSTERS, headers=manager_headers, json=_payload([], shift_name="morning shift"))
        assert second.status_code == 200
        assert second.json()["data"]["id"] == first.json()["data"]["id"]
        assert second.json()["data"]["shiftName"] == "Morning Shift"

    def test_legacy_shift_type_maps_to_shift_name(self, client, picker, manager_headers):
        body = {"date": _tomorrow().isoformat(), "shiftType": "evening", "slots": [{"userId": picker.id}]}
        response = client.post(ROSTERS, headers=manager_headers, json=body)
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["shiftName"] == "Evening Shift"
        assert data["slots"][0]["startTime"] == "17:00"

    def test_missing_shift_is_rejected(self, client, manager_headers):
        response = client.post(ROSTERS, headers=manager_headers, json={"date": _tomorrow().isoformat()})
        assert response.status_code == 400

    def test_unknown_shift_needs_explicit_times(self, client, picker, manager_headers):
        response = client.post(ROSTERS, headers=manager_headers, json=_payload([picker.id], shift_name="Night Shift"))
        assert response.status_code == 400

        body = _payload([], shift_name="Night Shift")
        body["slots"] = [{"userId": picker.id, "startTime": "22:00", "endTime": "06:00"}]
        response = client.post(ROSTERS, headers=manager_headers, json=body)
        assert response.status_code == 201
        assert response.json()["data"]["shiftType"] is None

    def test_invalid_slot_time(self, client, picker, manager_headers):
        body = _payload([])
        body["slots"] = [{"userId": picker.id, "startTime": "25:00", "endTime": "17:00"}]
        assert client.post(ROSTERS, headers=manager_headers, json=body).status_code == 400

    def test_unknown_user_always_blocks(self, client, manager_headers, store):
        response = client.post(ROSTERS, headers=manager_headers, json=_payload([4242]))
        assert response.status_code == 400
        codes = [e["code"] for e in response.json()["error"]["details"]["errors"]]
        assert "USER_NOT_FOUND" in codes

    def test_enforced_validation_blocks_understaffed_roster(self, client, picker, store_settings, manager_headers):
        store_settings(require_coverage_validation=True)
        response = client.post(ROSTERS, headers=manager_headers, json=_payload([picker.id]))
        assert response.status_code == 400
        details = response.json()["error"]["details"]
        assert details["valid"] is False
        assert [e["code"] for e in details["errors"]] == ["MIN_STAFF_NOT_MET"]

    def test_double_booking_is_a_warning_by_default(self, client, picker, manager_headers):
        client.post(ROSTERS, headers=manager_headers, json=_payload([picker.id]))
        response = client.post(ROSTERS, headers=manager_headers, json=_payload([picker.id], shift_name="Evening Shift"))
        assert response.status_code == 201
        warnings = response.json()["data"]["coverage"]["warnings"]
        assert any("already rostered on Morning Shift" in w for w in warnings)

    def test_duplicate_assignment_blocks_when_enforced(self, client, make_user, store_settings, manager_headers):
        store_settings(require_coverage_validation=True, min_staff_per_shift=1)
        user = make_user()
        response = client.post(ROSTERS, headers=manager_headers, json=_payload([user.id, user.id]))
        assert response.status_code == 400
        codes = [e["code"] for e in response.json()["error"]["details"]["errors"]]
        assert codes == ["DUPLICATE_ASSIGNMENT"]

    def test_archived_roster_cannot_be_modified(self, client, picker, make_roster, manager_headers):
        make_roster([picker.id], status="archived")
        response = client.post(ROSTERS, headers=manager_headers, json=_payload([picker.id]))
        assert response.status_code == 400

    def test_other_store_is_forbidden(self, client, picker, manager_headers):
        response = client.post(ROSTERS, headers=manager_headers, json=_payload([picker.id], storeId=999))
        assert response.status_code == 403

    def test_picker_cannot_create(self, client, picker, picker_headers):
        response = client.post(ROSTERS, headers=picker_headers, json=_payload([picker.id]))
        assert response.status_code == 403

    def test_shift_in_charge_can_create(self, client, picker, si_headers):
        response = client.post(ROSTERS, headers=si_headers, json=_payload([picker.id]))
        assert response.status_code == 201

    def test_shift_in_charge_cannot_publish_on_save(self, client, picker, si_headers):
        response = client.post(ROSTERS, headers=si_headers, json=_payload([picker.id], status="published"))
        assert response.status_code == 403

    def test_publish_on_save_publishes_slots(self, client, picker, manager_headers):
        response = client.post(ROSTERS, headers=manager_headers, json=_payload([picker.id], status="published"))
        data = response.json()["data"]
        assert data["status"] == "published"
        assert data["publishedAt"] is not None
        assert data["slots"][0]["status"] == "published"

    def test_database_failure_rolls_back(self, client, db_session, picker, manager_headers, monkeypatch):
        def failing_commit():
            raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(db_session, "commit", failing_commit)
        response = client.post(ROSTERS, headers=manager_headers, json=_payload([picker.id]))
        assert response.status_code == 500
        assert response.json()["error"]["code"] == "INTERNAL_ERROR"
        assert db_session.query(Roster).count() == 0


class TestReadRosters:

    def test_get_roster(self, client, picker, make_roster, picker_headers):
        roster = make_roster([picker.id, None])
        response = client.get(f"{ROSTERS}/{roster.id}", headers=picker_headers)
        assert response.status_code == 200
        slots = response.json()["data"]["slots"]
        assert [s["userId"] for s in slots] == [picker.id, None]

    def test_get_missing_roster(self, client, manager_headers):
        response = client.get(f"{ROSTERS}/999", headers=manager_headers)
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    def test_list_filters(self, client, picker, make_roster, manager_headers):
        tomorrow = _tomorrow()
        later = tomorrow + timedelta(days=1)
        make_roster([picker.id], roster_date=tomorrow)
        make_roster([], roster_date=tomorrow, shift_name="Evening Shift", status="published")
        make_roster([], roster_date=later)

        def names(**params):
            response = client.get(ROSTERS, headers=manager_headers, params=params)
            assert response.status_code == 200
            return [(r["date"], r["shiftName"]) for r in response.json()["data"]]

        assert len(names()) == 3
        assert len(names(date=tomorrow.isoformat())) == 2
        assert names(shiftName="evening shift") == [(tomorrow.isoformat(), "Evening Shift")]
        assert names(shiftType="evening") == [(tomorrow.isoformat(), "Evening Shift")]
        assert names(status="published") == [(tomorrow.isoformat(), "Evening Shift")]
        assert names(startDate=later.isoformat(), endDate=later.isoformat()) == [(later.isoformat(), "Morning Shift")]

    def test_list_other_store_forbidden(self, client, manager_headers):
        response = client.get(ROSTERS, headers=manager_headers, params={"storeId": 999})
        assert response.status_code == 403


class TestPublishRoster:

    def test_publish_cascades_to_slots(self, client, db_session, picker, make_roster, manager_headers):
        roster = make_roster([picker.id, None])
        response = client.post(f"{ROSTERS}/{roster.id}/publish", headers=manager_headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "published"
        assert {s["status"] for s in data["slots"]} == {"published"}
        entry = db_session.query(AuditLogEntry).filter_by(action="PUBLISH_ROSTER").one()
        assert entry.details["publishedSlots"] == 2

    def test_publish_twice_is_rejected(self, client, picker, make_roster, manager_headers):
        roster = make_roster([picker.id])
        client.post(f"{ROSTERS}/{roster.id}/publish", headers=manager_headers)
        response = client.post(f"{ROSTERS}/{roster.id}/publish", headers=manager_headers)
        assert response.status_code == 400

    def test_shift_in_charge_needs_publish_setting(self, client, picker, make_roster, store_settings, si_headers):
        roster = make_roster([picker.id])
        assert client.post(f"{ROSTERS}/{roster.id}/publish", headers=si_headers).status_code == 403
        store_settings(si_can_publish_roster=True)
        assert client.post(f"{ROSTERS}/{roster.id}/publish", headers=si_headers).status_code == 200


class TestDeleteRoster:

    def test_delete_is_idempotent(self, client, db_session, picker, make_roster, manager_headers):
        roster = make_roster([picker.id])
        first = client.delete(f"{ROSTERS}/{roster.id}", headers=manager_headers)
        assert first.status_code == 200
        assert first.json()["data"] == {"rosterId": roster.id, "deleted": True, "alreadyDeleted": False}

        second = client.delete(f"{ROSTERS}/{roster.id}", headers=manager_headers)
        assert second.status_code == 200
        assert second.json()["data"]["alreadyDeleted"] is True

        assert db_session.query(AuditLogEntry).filter_by(action="DELETE_ROSTER").count() == 1
        assert client.get(f"{ROSTERS}/{roster.id}", headers=manager_headers).status_code == 404

    def test_recreated_roster_gets_fresh_id_and_can_be_deleted(self, client, db_session, picker, manager_headers):
        first = client.post(ROSTERS, headers=manager_headers, json=_payload([picker.id]))
        first_id = first.json()["data"]["id"]
        assert client.delete(f"{ROSTERS}/{first_id}", headers=manager_headers).status_code == 200

        second = client.post(ROSTERS, headers=manager_headers, json=_payload([picker.id], shift_name="Evening Shift"))
        second_id = second.json()["data"]["id"]
        assert second_id != first_id

        response = client.delete(f"{ROSTERS}/{second_id}", headers=manager_headers)
        assert response.status_code == 200
        assert response.json()["data"]["alreadyDeleted"] is False
        assert db_session.get(Roster, second_id) is None
        assert db_session.query(AuditLogEntry).filter_by(action="DELETE_ROSTER").count() == 2

    def test_delete_in_progress(self, client, db_session, picker, make_roster, manager_headers):
        roster = make_roster([picker.id])
        db_session.add(RosterDeletion(roster_id=roster.id))
        db_session.commit()
        response = client.delete(f"{ROSTERS}/{roster.id}", headers=manager_headers)
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "OPERATION_IN_PROGRESS"

    def test_delete_missing_roster(self, client, db_session, manager_headers):
        response = client.delete(f"{ROSTERS}/999", headers=manager_headers)
        assert response.status_code == 404
        # The failed claim is not kept
        assert db_session.query(RosterDeletion).count() == 0

    def test_picker_cannot_delete(self, client, picker, make_roster, picker_headers):
        roster = make_roster([picker.id])
        assert client.delete(f"{ROSTERS}/{roster.id}", headers=picker_headers).status_code == 403


class TestAvailability:

    def test_availability(self, client, picker, make_user, make_roster, manager_headers):
        tomorrow = _tomorrow()
        weekday = (tomorrow.weekday() + 1) % 7
        make_roster([picker.id], roster_date=tomorrow)
        make_user(first_name="Omar", week_off_days=[weekday])
        make_user(first_name="Eve", default_shift_preference="Evening Shift")
        make_user(first_name="Mona", default_shift_preference="Morning")
        make_user(first_name="Gone", is_active=False)

        response = client.get(
            f"{ROSTERS}/availability",
            headers=manager_headers,
            params={"date": tomorrow.isoformat(), "shiftName": "Morning Shift"},
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert [u["firstName"] for u in data["engaged"]] == ["Priya"]
        assert [u["firstName"] for u in data["available"]] == ["Mona"]
        assert data["totalStaff"] == 2
        assert data["engagementPercentage"] == 50.0
        assert data["rosterId"] is not None

    def test_availability_without_roster(self, client, picker, manager_headers):
        response = client.get(
            f"{ROSTERS}/availability",
            headers=manager_headers,
            params={"date": _tomorrow().isoformat(), "shiftName": "Evening Shift"},
        )
        data = response.json()["data"]
        assert data["rosterId"] is None
        assert data["engagedCount"] == 0
        assert data["availableCount"] == 1

    def test_availability_requires_params(self, client, manager_headers):
        assert client.get(f"{ROSTERS}/availability", headers=manager_headers).status_code == 400

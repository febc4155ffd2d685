"""Staff user management tests."""

import pytest

from staff_roster.core.rbac_policy import Permission
from staff_roster.models.audit import AuditLogEntry
from staff_roster.models.user import User

USERS = "/api/v1/users"


def _new_user(role_id, **overrides):
    payload = {
        "employeeId": "PP100",
        "firstName": "Nina",
        "lastName": "Rao",
        "roleId": role_id,
        "experienceLevel": "fresher",
    }
    payload.update(overrides)
    return payload


class TestListUsers:

    def test_list_is_paged(self, client, manager, picker, manager_headers):
        response = client.get(USERS, headers=manager_headers, params={"pageSize": 1})
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["total"] == 2
        assert len(data["items"]) == 1
        assert data["hasMore"] is True
        assert data["items"][0]["role"]["name"]

    def test_search(self, client, manager, picker, manager_headers):
        response = client.get(USERS, headers=manager_headers, params={"search": "priya"})
        items = response.json()["data"]["items"]
        assert [u["firstName"] for u in items] == ["Priya"]

    def test_inactive_hidden_by_default(self, client, make_user, manager, manager_headers):
        make_user(first_name="Idle", is_active=False)
        names = [u["firstName"] for u in client.get(USERS, headers=manager_headers).json()["data"]["items"]]
        assert "Idle" not in names
        names = [
            u["firstName"]
            for u in client.get(USERS, headers=manager_headers, params={"includeInactive": True}).json()["data"]["items"]
        ]
        assert "Idle" in names

    def test_requires_authentication(self, client, store):
        assert client.get(USERS).status_code == 401


class TestCreateUser:

    def test_manager_creates_user_with_temporary_password(self, client, db_session, roles, manager_headers):
        role = roles["Picker Packer (Warehouse)"]
        response = client.post(USERS, headers=manager_headers, json=_new_user(role.id))
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["temporaryPassword"]
        assert data["user"]["employeeId"] == "PP100"
        assert data["user"]["ppType"] == "warehouse"
        assert db_session.query(AuditLogEntry).filter_by(action="CREATE_USER").count() == 1

    def test_explicit_password_not_echoed(self, client, roles, manager_headers):
        role = roles["Picker Packer (Warehouse)"]
        response = client.post(USERS, headers=manager_headers, json=_new_user(role.id, password="s3cret-pass"))
        assert response.status_code == 201
        assert response.json()["data"]["temporaryPassword"] is None

    def test_duplicate_employee_id(self, client, roles, picker, manager_headers):
        role = roles["Picker Packer (Warehouse)"]
        response = client.post(USERS, headers=manager_headers, json=_new_user(role.id, employeeId=picker.employee_id))
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_blank_first_name_rejected(self, client, roles, manager_headers):
        role = roles["Picker Packer (Warehouse)"]
        response = client.post(USERS, headers=manager_headers, json=_new_user(role.id, firstName="   "))
        assert response.status_code == 400

    def test_picker_cannot_create(self, client, roles, picker_headers):
        role = roles["Picker Packer (Warehouse)"]
        response = client.post(USERS, headers=picker_headers, json=_new_user(role.id))
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "PERMISSION_DENIED"

    def test_si_cannot_create_store_manager(self, client, roles, si_headers):
        response = client.post(USERS, headers=si_headers, json=_new_user(roles["Store Manager"].id))
        assert response.status_code == 403

    def test_si_cannot_create_store_manager_with_override(self, client, db_session, roles, store_settings, si_headers):
        store_settings(si_can_modify_sm=True)
        response = client.post(USERS, headers=si_headers, json=_new_user(roles["Store Manager"].id))
        assert response.status_code == 403
        assert response.json()["error"]["message"] == "Only a Store Manager can assign the Store Manager role"
        assert db_session.query(User).filter_by(role_id=roles["Store Manager"].id).count() == 0

    def test_inventory_executive_limited_to_staff(self, client, roles, inventory_executive, auth_headers):
        headers = auth_headers(inventory_executive)
        denied = client.post(USERS, headers=headers, json=_new_user(roles["Shift In Charge"].id))
        assert denied.status_code == 403
        allowed = client.post(USERS, headers=headers, json=_new_user(roles["Picker Packer"].id))
        assert allowed.status_code == 201


class TestUpdateUser:

    def test_update_fields(self, client, picker, manager_headers):
        response = client.put(
            f"{USERS}/{picker.id}",
            headers=manager_headers,
            json={"firstName": "Pri", "phone": "555-0100", "weekOffDays": [0]},
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["firstName"] == "Pri"
        assert data["weekOffDays"] == [0]

    @pytest.mark.parametrize("days", [[0, 1], [7], [-1]])
    def test_invalid_week_off_days(self, client, picker, manager_headers, days):
        response = client.put(f"{USERS}/{picker.id}", headers=manager_headers, json={"weekOffDays": days})
        assert response.status_code == 400
        assert response.json()["error"]["details"]["reason"] == "INVALID_WEEKOFF_DAYS"

    def test_duplicate_week_off_day_collapses(self, client, picker, manager_headers):
        response = client.put(f"{USERS}/{picker.id}", headers=manager_headers, json={"weekOffDays": [3, 3]})
        assert response.status_code == 200
        assert response.json()["data"]["weekOffDays"] == [3]

    def test_ad_hoc_picker_cannot_have_week_off(self, client, make_user, manager_headers):
        ad_hoc = make_user("Picker Packer (Ad-Hoc)")
        assert ad_hoc.pp_type == "adHoc"
        response = client.put(f"{USERS}/{ad_hoc.id}", headers=manager_headers, json={"weekOffDays": [2]})
        assert response.status_code == 400
        assert response.json()["error"]["details"]["reason"] == "INVALID_WEEKOFF_DAYS"

    def test_switching_to_ad_hoc_clears_week_off(self, client, db_session, picker, manager_headers):
        picker.week_off_days = [1]
        db_session.commit()
        response = client.put(f"{USERS}/{picker.id}", headers=manager_headers, json={"ppType": "adHoc"})
        assert response.status_code == 200
        assert response.json()["data"]["weekOffDays"] == []

    def test_update_is_audited_with_changes(self, client, db_session, picker, manager_headers):
        client.put(f"{USERS}/{picker.id}", headers=manager_headers, json={"firstName": "Pia"})
        entry = db_session.query(AuditLogEntry).filter_by(action="UPDATE_USER").one()
        assert entry.changes["first_name"] == {"old": "Priya", "new": "Pia"}

    def test_si_cannot_edit_store_manager(self, client, manager, si_headers):
        response = client.put(f"{USERS}/{manager.id}", headers=si_headers, json={"firstName": "X"})
        assert response.status_code == 403

    def test_si_can_edit_store_manager_with_override(self, client, manager, store_settings, si_headers):
        store_settings(si_can_modify_sm=True)
        response = client.put(f"{USERS}/{manager.id}", headers=si_headers, json={"firstName": "Mia"})
        assert response.status_code == 200

    def test_only_store_manager_assigns_store_manager_role(self, client, roles, picker, store_settings, si_headers):
        store_settings(si_can_modify_sm=True)
        response = client.put(
            f"{USERS}/{picker.id}",
            headers=si_headers,
            json={"roleId": roles["Store Manager"].id},
        )
        assert response.status_code == 403

    def test_cannot_demote_last_store_manager(self, client, roles, manager, manager_headers):
        response = client.put(
            f"{USERS}/{manager.id}",
            headers=manager_headers,
            json={"roleId": roles["Shift In Charge"].id},
        )
        assert response.status_code == 400
        assert "last active Store Manager" in response.json()["error"]["message"]

    def test_demote_when_another_manager_exists(self, client, make_user, roles, manager, manager_headers):
        other = make_user("Store Manager")
        response = client.put(
            f"{USERS}/{other.id}",
            headers=manager_headers,
            json={"roleId": roles["Shift In Charge"].id},
        )
        assert response.status_code == 200
        assert response.json()["data"]["role"]["kind"] == "shift_in_charge"

    def test_cannot_deactivate_last_store_manager(self, client, manager, manager_headers):
        response = client.put(f"{USERS}/{manager.id}", headers=manager_headers, json={"isActive": False})
        assert response.status_code == 400


class TestDeleteUser:

    def test_soft_delete_reports_impacted_slots(self, client, db_session, picker, make_roster, manager_headers):
        roster = make_roster([picker.id])
        response = client.request(
            "DELETE", f"{USERS}/{picker.id}", headers=manager_headers, json={"reason": "Left the company"},
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["canReassign"] is True
        assert data["impactedSlots"][0]["rosterId"] == roster.id

        db_session.expire_all()
        stored = db_session.get(User, picker.id)
        assert stored.deleted_at is not None
        assert stored.deletion_reason == "Left the company"
        assert stored.is_active is False
        assert client.get(f"{USERS}/{picker.id}", headers=manager_headers).status_code == 404

    def test_delete_without_body(self, client, picker, manager_headers):
        response = client.delete(f"{USERS}/{picker.id}", headers=manager_headers)
        assert response.status_code == 200
        assert response.json()["data"]["impactedSlots"] == []

    def test_cannot_delete_self(self, client, manager, manager_headers):
        response = client.delete(f"{USERS}/{manager.id}", headers=manager_headers)
        assert response.status_code == 400

    def test_si_needs_delete_setting(self, client, picker, store_settings, si_headers):
        assert client.delete(f"{USERS}/{picker.id}", headers=si_headers).status_code == 403
        store_settings(si_can_delete_staff=True)
        assert client.delete(f"{USERS}/{picker.id}", headers=si_headers).status_code == 200

    def test_cannot_delete_last_store_manager(self, client, manager, store_settings, si_headers):
        store_settings(
            si_can_delete_staff=True,
            si_can_modify_sm=True,
            si_permissions=[Permission.DELETE_SM_USER],
        )
        response = client.delete(f"{USERS}/{manager.id}", headers=si_headers)
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Cannot delete the last active Store Manager"


class TestBulkImport:

    def test_rows_succeed_or_fail_independently(self, client, db_session, roles, picker, manager_headers):
        role_id = roles["Picker Packer (Warehouse)"].id
        rows = [
            {"employeeId": "B1", "firstName": "Ana", "roleId": role_id, "experienceLevel": "fresher"},
            {"employeeId": "B1", "firstName": "Dup", "roleId": role_id, "experienceLevel": "fresher"},
            {"employeeId": "B2", "firstName": "Bad", "roleId": role_id, "experienceLevel": "expert"},
            {"employeeId": "B3", "firstName": "Mail", "roleId": role_id, "experienceLevel": "fresher", "email": "nope"},
            {"employeeId": picker.employee_id, "firstName": "Again", "roleId": role_id, "experienceLevel": "fresher"},
            {"employeeId": "B4", "firstName": "Ben", "roleId": role_id, "experienceLevel": "experienced", "weekOffsCount": 9},
            {"employeeId": "B5", "firstName": "Cara", "roleId": 9999, "experienceLevel": "fresher"},
            {"employeeId": "B6", "firstName": "Dev", "roleId": role_id, "experienceLevel": "experienced"},
        ]
        response = client.post(f"{USERS}/bulk-import", headers=manager_headers, json={"users": rows})
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["created"] == 2
        errors = {e["row"]: e["error"] for e in data["errors"]}
        assert errors[2].startswith('Duplicate employee ID "B1" found in import batch')
        assert errors[3] == 'Invalid experience level "expert"'
        assert errors[4] == "Invalid email format"
        assert errors[5] == f'Employee ID "{picker.employee_id}" already exists'
        assert errors[6] == "Week offs count must be between 0 and 7 (got 9)"
        assert errors[7] == "Role not found"
        assert {u["employeeId"] for u in data["users"]} == {"B1", "B6"}
        assert db_session.query(User).filter(User.employee_id.in_(["B1", "B6"])).count() == 2

    def test_skip_duplicates(self, client, roles, picker, manager_headers):
        role_id = roles["Picker Packer (Warehouse)"].id
        rows = [{"employeeId": picker.employee_id, "firstName": "Again", "roleId": role_id, "experienceLevel": "fresher"}]
        response = client.post(
            f"{USERS}/bulk-import", headers=manager_headers, json={"users": rows, "skipDuplicates": True},
        )
        data = response.json()["data"]
        assert data["skipped"] == 1
        assert data["errors"] == []

    def test_requires_crud_user(self, client, roles, picker_headers):
        rows = [{"employeeId": "X1", "firstName": "X", "roleId": 1, "experienceLevel": "fresher"}]
        response = client.post(f"{USERS}/bulk-import", headers=picker_headers, json={"users": rows})
        assert response.status_code == 403


class TestAutoDeactivate:

    def test_deactivates_and_reports_failures(self, client, db_session, make_user, manager, manager_headers):
        a = make_user()
        b = make_user(is_active=False)
        response = client.post(
            f"{USERS}/auto-deactivate",
            headers=manager_headers,
            json={"userIds": [a.id, b.id, 4242, manager.id], "reason": "No shows"},
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["deactivated"] == [a.id]
        errors = {e["userId"]: e["error"] for e in data["errors"]}
        assert errors[b.id] == "User is already inactive"
        assert errors[4242] == "User not found"
        assert errors[manager.id] == "Cannot deactivate the last active Store Manager"
        db_session.expire_all()
        assert db_session.get(User, a.id).is_active is False

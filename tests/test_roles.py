"""Role management tests."""

ROLES = "/api/v1/roles"


class TestRoles:

    def test_list_system_roles_first(self, client, roles, picker_headers):
        response = client.get(ROLES, headers=picker_headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert len(data) == 6
        assert [r["isSystemRole"] for r in data[:2]] == [True, True]
        assert {r["name"] for r in data[:2]} == {"Store Manager", "Shift In Charge"}

    def test_create_custom_role(self, client, manager_headers):
        response = client.post(
            ROLES,
            headers=manager_headers,
            json={"name": "Night Auditor", "permissions": ["VIEW_ROSTER", "VIEW_REPORTS"]},
        )
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["kind"] == "custom"
        assert data["isSystemRole"] is False
        assert data["permissions"] == ["VIEW_ROSTER", "VIEW_REPORTS"]

    def test_unknown_permission_rejected(self, client, manager_headers):
        response = client.post(ROLES, headers=manager_headers, json={"name": "X", "permissions": ["FLY"]})
        assert response.status_code == 400

    def test_duplicate_name_rejected(self, client, manager_headers):
        response = client.post(ROLES, headers=manager_headers, json={"name": "store manager"})
        assert response.status_code == 400

    def test_shift_in_charge_cannot_manage_roles(self, client, si_headers):
        assert client.post(ROLES, headers=si_headers, json={"name": "Temp"}).status_code == 403

    def test_store_manager_role_is_not_editable(self, client, roles, manager_headers):
        role = roles["Store Manager"]
        response = client.put(f"{ROLES}/{role.id}", headers=manager_headers, json={"description": "x"})
        assert response.status_code == 403
        assert response.json()["error"]["details"]["reason"] == "ROLE_NOT_EDITABLE"

    def test_update_permissions(self, client, db_session, roles, manager_headers):
        role = roles["Shift In Charge"]
        response = client.put(
            f"{ROLES}/{role.id}",
            headers=manager_headers,
            json={"permissions": ["VIEW_ROSTER", "PUBLISH_ROSTER"]},
        )
        assert response.status_code == 200
        assert response.json()["data"]["permissions"] == ["VIEW_ROSTER", "PUBLISH_ROSTER"]

    def test_system_role_kind_is_fixed(self, client, roles, manager_headers):
        role = roles["Shift In Charge"]
        response = client.put(f"{ROLES}/{role.id}", headers=manager_headers, json={"kind": "custom"})
        assert response.status_code == 400

    def test_renamed_role_keeps_its_authority(self, client, roles, manager_headers, si_headers, picker):
        role = roles["Shift In Charge"]
        client.put(f"{ROLES}/{role.id}", headers=manager_headers, json={"name": "Floor Lead"})
        body = {"date": "2030-01-01", "shiftName": "Morning Shift", "slots": [{"userId": picker.id}]}
        assert client.post("/api/v1/rosters", headers=si_headers, json=body).status_code == 201

    def test_delete_system_role(self, client, roles, manager_headers):
        response = client.delete(f"{ROLES}/{roles['Shift In Charge'].id}", headers=manager_headers)
        assert response.status_code == 400
        assert response.json()["error"]["details"]["reason"] == "DELETE_NOT_ALLOWED"

    def test_delete_assigned_role(self, client, roles, picker, manager_headers):
        response = client.delete(f"{ROLES}/{roles['Picker Packer (Warehouse)'].id}", headers=manager_headers)
        assert response.status_code == 400
        assert response.json()["error"]["details"]["affectedUsers"] == 1

    def test_delete_unused_role(self, client, manager_headers):
        role_id = client.post(ROLES, headers=manager_headers, json={"name": "Seasonal"}).json()["data"]["id"]
        response = client.delete(f"{ROLES}/{role_id}", headers=manager_headers)
        assert response.status_code == 200
        assert response.json()["data"] == {"id": role_id, "deleted": True}
        assert client.get(f"{ROLES}/{role_id}", headers=manager_headers).status_code == 404

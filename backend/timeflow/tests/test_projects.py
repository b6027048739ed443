"""
Project management tests for the TimeFlow backend.

Tests cover personal project provisioning, project visibility through
team membership, manage rights, deletion guards, and team binding.
"""
from fastapi import status

from .test_base import BaseAPITest, API, TestDataFactory


class TestProjectList(BaseAPITest):
    """Test cases for the caller's project list."""

    def test_list_creates_personal_project(self, client, storage, auth_headers, regular_user):
        response = client.get(f"{API}/projects/", headers=auth_headers)

        self.assert_success_response(response)
        projects = response.json()
        assert len(projects) == 1
        assert projects[0]["is_personal"] is True
        assert projects[0]["name"] == "Personal Project - Maria"
        assert projects[0]["owner_id"] == regular_user.id

    def test_personal_project_created_once(self, client, storage, auth_headers, regular_user):
        client.get(f"{API}/projects/", headers=auth_headers)
        client.get(f"{API}/projects/", headers=auth_headers)

        personal = [p for p in storage.get_all_projects() if p.is_personal]
        assert len(personal) == 1

    def test_team_member_sees_shared_project(self, client, storage, other_headers, other_user, team, shared_project):
        storage.add_team_member(team.id, other_user.id)

        response = client.get(f"{API}/projects/", headers=other_headers)

        ids = [p["id"] for p in response.json()]
        assert shared_project.id in ids
        assert ids.count(shared_project.id) == 1

    def test_outsider_does_not_see_shared_project(self, client, other_headers, shared_project):
        response = client.get(f"{API}/projects/", headers=other_headers)
        assert shared_project.id not in [p["id"] for p in response.json()]

    def test_inactive_projects_hidden(self, client, storage, auth_headers, shared_project):
        storage.delete_project(shared_project.id)
        response = client.get(f"{API}/projects/", headers=auth_headers)
        assert shared_project.id not in [p["id"] for p in response.json()]

    def test_list_all_requires_admin(self, client, auth_headers):
        self.assert_forbidden(client.get(f"{API}/projects/all", headers=auth_headers))

    def test_list_all_includes_inactive(self, client, storage, admin_headers, shared_project):
        storage.delete_project(shared_project.id)

        response = client.get(f"{API}/projects/all", headers=admin_headers)

        self.assert_success_response(response)
        assert shared_project.id in [p["id"] for p in response.json()]


class TestProjectCRUD(BaseAPITest):
    """Test cases for project create, read, update, and delete."""

    def test_create_project(self, client, auth_headers, regular_user):
        response = client.post(f"{API}/projects/", json=TestDataFactory.create_project(), headers=auth_headers)

        self.assert_success_response(response, status.HTTP_201_CREATED)
        data = response.json()
        assert data["name"] == "Website Redesign"
        assert data["estimated_hours"] == 120
        assert data["owner_id"] == regular_user.id
        assert data["is_active"] is True

    def test_non_admin_cannot_assign_owner(self, client, auth_headers, regular_user, other_user):
        response = client.post(f"{API}/projects/", headers=auth_headers,
                               json=TestDataFactory.create_project(owner_id=other_user.id))
        assert response.json()["owner_id"] == regular_user.id

    def test_admin_creates_for_another_user(self, client, admin_headers, other_user):
        response = client.post(f"{API}/projects/", headers=admin_headers,
                               json=TestDataFactory.create_project(owner_id=other_user.id))

        self.assert_success_response(response, status.HTTP_201_CREATED)
        assert response.json()["owner_id"] == other_user.id

    def test_admin_creates_for_unknown_owner(self, client, admin_headers):
        response = client.post(f"{API}/projects/", headers=admin_headers,
                               json=TestDataFactory.create_project(owner_id=9999))
        self.assert_not_found(response)

    def test_second_personal_project_rejected(self, client, storage, auth_headers, regular_user):
        storage.ensure_personal_project(regular_user)
        response = client.post(f"{API}/projects/", headers=auth_headers,
                               json=TestDataFactory.create_project(is_personal=True))
        self.assert_conflict(response)

    def test_create_project_negative_estimate(self, client, auth_headers):
        response = client.post(f"{API}/projects/", headers=auth_headers,
                               json=TestDataFactory.create_project(estimated_hours=-1))
        self.assert_validation_error(response, "estimated_hours")

    def test_get_project_as_team_member(self, client, storage, other_headers, other_user, team, shared_project):
        storage.add_team_member(team.id, other_user.id)
        response = client.get(f"{API}/projects/{shared_project.id}", headers=other_headers)
        self.assert_success_response(response)

    def test_get_project_via_inactive_team(self, client, storage, other_headers, other_user, regular_user,
                                          team, shared_project):
        storage.add_team_member(team.id, other_user.id)
        task = storage.create_task(name="Hero banner", user_id=regular_user.id, project_id=shared_project.id)
        storage.update_team(team.id, {"is_active": False})

        self.assert_forbidden(client.get(f"{API}/projects/{shared_project.id}", headers=other_headers))
        self.assert_forbidden(client.get(f"{API}/tasks/{task.id}", headers=other_headers))

    def test_get_project_without_access(self, client, other_headers, shared_project):
        self.assert_forbidden(client.get(f"{API}/projects/{shared_project.id}", headers=other_headers))

    def test_get_project_not_found(self, client, auth_headers):
        self.assert_not_found(client.get(f"{API}/projects/9999", headers=auth_headers))

    def test_update_project_as_owner(self, client, auth_headers, shared_project):
        response = client.put(f"{API}/projects/{shared_project.id}", headers=auth_headers, json={
            "description": "Second iteration",
            "deadline": "2024-06-30T18:00:00Z"
        })

        self.assert_success_response(response)
        data = response.json()
        assert data["name"] == "Website Redesign"
        assert data["description"] == "Second iteration"
        assert data["deadline"].startswith("2024-06-30T18:00:00")

    def test_update_project_as_team_manager(self, client, storage, other_headers, other_user, team, shared_project):
        storage.add_team_manager(team.id, other_user.id)
        response = client.put(f"{API}/projects/{shared_project.id}", headers=other_headers,
                              json={"name": "Renamed"})

        self.assert_success_response(response)
        assert response.json()["name"] == "Renamed"

    def test_update_project_as_plain_member(self, client, storage, other_headers, other_user, team, shared_project):
        storage.add_team_member(team.id, other_user.id)
        response = client.put(f"{API}/projects/{shared_project.id}", headers=other_headers,
                              json={"name": "Renamed"})
        self.assert_forbidden(response)

    def test_update_cannot_deactivate_personal_project(self, client, storage, auth_headers, regular_user):
        personal, _ = storage.ensure_personal_project(regular_user)
        task = storage.create_task(name="Notes", user_id=regular_user.id, project_id=personal.id)

        response = client.put(f"{API}/projects/{personal.id}", headers=auth_headers, json={"is_active": False})

        self.assert_success_response(response)
        assert response.json()["is_active"] is True
        listed = client.get(f"{API}/projects/", headers=auth_headers).json()
        assert personal.id in [p["id"] for p in listed]
        tasks = client.get(f"{API}/tasks/", headers=auth_headers).json()
        assert task.id in [t["id"] for t in tasks]

    def test_update_cannot_deactivate_project_with_tasks(self, client, storage, auth_headers, regular_user,
                                                         shared_project):
        storage.create_task(name="Hero banner", user_id=regular_user.id, project_id=shared_project.id)

        response = client.put(f"{API}/projects/{shared_project.id}", headers=auth_headers,
                              json={"is_active": False})

        self.assert_success_response(response)
        assert storage.get_project(shared_project.id).is_active is True

    def test_delete_project(self, client, storage, auth_headers, shared_project):
        response = client.delete(f"{API}/projects/{shared_project.id}", headers=auth_headers)

        self.assert_success_response(response)
        assert storage.get_project(shared_project.id).is_active is False

    def test_delete_project_with_active_tasks(self, client, storage, auth_headers, regular_user, shared_project):
        storage.create_task(name="Hero banner", user_id=regular_user.id, project_id=shared_project.id)
        response = client.delete(f"{API}/projects/{shared_project.id}", headers=auth_headers)
        self.assert_conflict(response)

    def test_delete_personal_project(self, client, storage, auth_headers, regular_user):
        project, _ = storage.ensure_personal_project(regular_user)
        response = client.delete(f"{API}/projects/{project.id}", headers=auth_headers)
        self.assert_bad_request(response, "Personal projects cannot be deleted")


class TestProjectTeams(BaseAPITest):
    """Test cases for sharing projects with teams."""

    def test_bind_project_to_team(self, client, storage, auth_headers, regular_user, team):
        project = storage.create_project(name="Mobile App", owner_id=regular_user.id)

        response = client.post(f"{API}/projects/{project.id}/teams", json={"team_id": team.id},
                               headers=auth_headers)

        self.assert_success_response(response, status.HTTP_201_CREATED)
        data = response.json()
        assert data["project_id"] == project.id
        assert data["team_id"] == team.id

        teams = client.get(f"{API}/projects/{project.id}/teams", headers=auth_headers).json()
        assert [t["id"] for t in teams] == [team.id]

    def test_bind_twice(self, client, auth_headers, team, shared_project):
        response = client.post(f"{API}/projects/{shared_project.id}/teams", json={"team_id": team.id},
                               headers=auth_headers)
        self.assert_conflict(response)

    def test_bind_personal_project(self, client, storage, auth_headers, regular_user, team):
        project, _ = storage.ensure_personal_project(regular_user)
        response = client.post(f"{API}/projects/{project.id}/teams", json={"team_id": team.id},
                               headers=auth_headers)
        self.assert_bad_request(response)

    def test_bind_to_unknown_team(self, client, auth_headers, shared_project):
        response = client.post(f"{API}/projects/{shared_project.id}/teams", json={"team_id": 9999},
                               headers=auth_headers)
        self.assert_not_found(response)

    def test_bind_to_team_caller_is_not_in(self, client, storage, auth_headers, regular_user):
        project = storage.create_project(name="Mobile App", owner_id=regular_user.id)
        foreign_team = storage.create_team(name="Finance")

        response = client.post(f"{API}/projects/{project.id}/teams", json={"team_id": foreign_team.id},
                               headers=auth_headers)
        self.assert_forbidden(response)

    def test_bind_without_manage_rights(self, client, storage, other_headers, other_user, team, shared_project):
        storage.add_team_member(team.id, other_user.id)
        second_team = storage.create_team(name="Design")
        storage.add_team_member(second_team.id, other_user.id)

        response = client.post(f"{API}/projects/{shared_project.id}/teams", json={"team_id": second_team.id},
                               headers=other_headers)
        self.assert_forbidden(response)

    def test_admin_binds_to_any_team(self, client, storage, admin_headers, shared_project):
        finance = storage.create_team(name="Finance")
        response = client.post(f"{API}/projects/{shared_project.id}/teams", json={"team_id": finance.id},
                               headers=admin_headers)
        self.assert_success_response(response, status.HTTP_201_CREATED)

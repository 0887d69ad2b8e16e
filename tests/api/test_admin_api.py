"""
Tests de los endpoints de administración: plantillas, generación,
paquetes y cancelaciones.
"""

from datetime import timedelta


class TestScheduleAdminApi:
    """Tests de /api/v1/schedule."""

    def _template_payload(self, seed, **overrides):
        payload = {
            "day_of_week": 0,
            "start_time": "18:00:00",
            "class_type_id": seed["class_type"].id,
            "coach_id": seed["coach"].id,
            "location_id": seed["location"].id,
            "capacity": 10,
        }
        payload.update(overrides)
        return payload

    def test_create_template_and_generate(self, client, seed, auth_headers):
        headers = auth_headers(seed["admin"])

        created = client.post("/api/v1/schedule/templates", json=self._template_payload(seed), headers=headers)
        assert created.status_code == 201
        assert created.json()["duration_minutes"] == 60
        assert created.json()["is_active"] is True

        report = client.post("/api/v1/schedule/generate", json={"months_ahead": 1}, headers=headers)
        assert report.status_code == 200
        assert report.json()["created"] == 5
        assert report.json()["errors"] == []

        again = client.post("/api/v1/schedule/generate", json={"months_ahead": 1}, headers=headers)
        assert again.json()["created"] == 0

        classes = client.get("/api/v1/schedule/classes", headers=auth_headers(seed["member"]))
        assert classes.status_code == 200
        # Ventana por defecto: los próximos 7 días (solo el lunes 5 de enero)
        assert len(classes.json()) == 1
        assert classes.json()[0]["available_spots"] == 10

    def test_generate_months_out_of_range(self, client, seed, auth_headers):
        response = client.post("/api/v1/schedule/generate", json={"months_ahead": 13},
                               headers=auth_headers(seed["admin"]))
        assert response.status_code == 422

    def test_template_requires_coach_role(self, client, seed, auth_headers):
        response = client.post(
            "/api/v1/schedule/templates",
            json=self._template_payload(seed, coach_id=seed["member"].id),
            headers=auth_headers(seed["admin"]),
        )
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_override_requires_dates(self, client, seed, auth_headers):
        response = client.post(
            "/api/v1/schedule/templates",
            json=self._template_payload(seed, is_override=True),
            headers=auth_headers(seed["admin"]),
        )
        assert response.status_code == 422

    def test_update_and_deactivate_template(self, client, seed, auth_headers):
        headers = auth_headers(seed["admin"])
        template_id = client.post("/api/v1/schedule/templates", json=self._template_payload(seed),
                                  headers=headers).json()["id"]

        updated = client.patch(f"/api/v1/schedule/templates/{template_id}", json={"capacity": 15},
                               headers=headers)
        assert updated.status_code == 200
        assert updated.json()["capacity"] == 15

        deactivated = client.post(f"/api/v1/schedule/templates/{template_id}/deactivate", headers=headers)
        assert deactivated.status_code == 200
        assert deactivated.json()["is_active"] is False

        active = client.get("/api/v1/schedule/templates", params={"active_only": True}, headers=headers)
        assert active.json() == []

    def test_members_cannot_manage_templates(self, client, seed, auth_headers):
        response = client.post("/api/v1/schedule/templates", json=self._template_payload(seed),
                               headers=auth_headers(seed["member"]))
        assert response.status_code == 403

    def test_cancel_class_refunds_bookings(self, client, seed, auth_headers, make_instance, make_entry):
        make_entry(remaining=3)
        instance = make_instance()
        member_headers = auth_headers(seed["member"])
        client.post("/api/v1/bookings", json={"class_instance_id": instance.id}, headers=member_headers)

        response = client.post(f"/api/v1/schedule/classes/{instance.id}/cancel",
                               headers=auth_headers(seed["admin"]))

        assert response.status_code == 200
        assert response.json() == {"class_instance_id": instance.id, "cancelled_bookings": 1}
        assert client.get("/api/v1/credits/me", headers=member_headers).json()["available_credits"] == 3


class TestPackagesAdminApi:
    """Tests de /api/v1/admin."""

    def test_grant_package(self, client, seed, auth_headers):
        response = client.post(
            f"/api/v1/admin/members/{seed['member'].id}/packages",
            json={"package_id": seed["package"].id},
            headers=auth_headers(seed["admin"]),
        )

        assert response.status_code == 201
        assert response.json()["sessions_remaining"] == 5
        credits = client.get("/api/v1/credits/me", headers=auth_headers(seed["member"]))
        assert credits.json()["available_credits"] == 5

    def test_grant_requires_admin(self, client, seed, auth_headers):
        response = client.post(
            f"/api/v1/admin/members/{seed['member'].id}/packages",
            json={"package_id": seed["package"].id},
            headers=auth_headers(seed["member"]),
        )
        assert response.status_code == 403

    def test_admin_cancel_inside_window(self, client, seed, auth_headers, make_instance, make_entry, clock):
        make_entry(remaining=2)
        instance = make_instance(start=clock.now() + timedelta(minutes=20))
        booking_id = client.post("/api/v1/bookings", json={"class_instance_id": instance.id},
                                 headers=auth_headers(seed["member"])).json()["id"]

        response = client.post(f"/api/v1/admin/bookings/{booking_id}/cancel", headers=auth_headers(seed["admin"]))

        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"

    def test_expire_packages(self, client, seed, auth_headers, make_entry, clock):
        make_entry(remaining=2, purchased_at=clock.now() - timedelta(days=45), expires_in=timedelta(days=30))

        response = client.post("/api/v1/admin/packages/expire", headers=auth_headers(seed["admin"]))

        assert response.status_code == 200
        assert response.json() == {"expired_packages": 1}

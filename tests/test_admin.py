"""
Tests for admin endpoints.
"""

from reliefnet.models import ReportStatus


class TestAdminStats:
    """Tests for GET /api/admin/stats"""

    def test_stats(self, client, admin_headers, make_report):
        make_report()
        make_report(status=ReportStatus.VERIFIED)
        make_report(status=ReportStatus.VERIFIED)
        make_report(status=ReportStatus.REJECTED)
        client.post('/api/donations', json={
            'amount': 1200, 'campaign': 'Flood Relief', 'donor_name': 'Anon'
        })

        response = client.get('/api/admin/stats', headers=admin_headers)

        assert response.status_code == 200
        assert response.json['reports'] == {
            'total': 4, 'pending': 1, 'verified': 2, 'rejected': 1,
        }
        assert response.json['donations'] == {'count': 1, 'total_amount': 1200}

    def test_stats_requires_admin(self, client, auth_headers):
        response = client.get('/api/admin/stats', headers=auth_headers)

        assert response.status_code == 403

    def test_stats_requires_token(self, client, db_session):
        response = client.get('/api/admin/stats')

        assert response.status_code == 401

    def test_admin_by_email_whitelist(self, app, client, test_user, auth_headers):
        app.config['ADMIN_EMAILS'] = [test_user['email'].lower()]
        try:
            response = client.get('/api/admin/stats', headers=auth_headers)
        finally:
            app.config['ADMIN_EMAILS'] = []

        assert response.status_code == 200


class TestUserManagement:
    """Tests for /api/admin/users"""

    def test_list_users(self, client, admin_headers, test_user):
        response = client.get('/api/admin/users', headers=admin_headers)

        assert response.status_code == 200
        assert response.json['total'] == 2

    def test_promote_user(self, client, admin_headers, test_user, auth_headers):
        response = client.put(
            f"/api/admin/users/{test_user['id']}/role",
            json={'role': 'admin'},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json['user']['role'] == 'admin'
        assert client.get('/api/admin/stats', headers=auth_headers).status_code == 200

    def test_cannot_demote_self(self, client, admin_headers, admin_user):
        response = client.put(
            f"/api/admin/users/{admin_user['id']}/role",
            json={'role': 'user'},
            headers=admin_headers,
        )

        assert response.status_code == 400

    def test_invalid_role(self, client, admin_headers, test_user):
        response = client.put(
            f"/api/admin/users/{test_user['id']}/role",
            json={'role': 'superuser'},
            headers=admin_headers,
        )

        assert response.status_code == 400

    def test_unknown_user(self, client, admin_headers):
        response = client.put(
            '/api/admin/users/99999/role',
            json={'role': 'admin'},
            headers=admin_headers,
        )

        assert response.status_code == 404

import pytest

from apps.alerts.models import AlertRule, IncidentEventType, IncidentStatus, RuleType
from apps.alerts.services import IncidentManager


@pytest.fixture
def incident(db):
    return IncidentManager.create_manual("acme", "Checkout down")


def action_url(incident, tool):
    return f"/admin/alerts/incident/{incident.pk}/actions/{tool}/"


@pytest.mark.django_db
class TestAdminPagesLoad:
    def test_dashboard(self, admin_client, incident):
        response = admin_client.get("/admin/")
        assert response.status_code == 200
        assert response.context["active_incidents"]["open"] == 1

    def test_incident_changelist(self, admin_client, incident):
        response = admin_client.get("/admin/alerts/incident/")
        assert response.status_code == 200
        assert b"Checkout down" in response.content

    def test_incident_change_page_shows_timeline(self, admin_client, incident):
        response = admin_client.get(f"/admin/alerts/incident/{incident.pk}/change/")
        assert response.status_code == 200
        assert b"Incident created manually" in response.content

    def test_rule_and_firing_lists(self, admin_client):
        AlertRule.objects.create(org_id="acme", name="Errors", rule_type=RuleType.ERROR_COUNT)
        assert admin_client.get("/admin/alerts/alertrule/").status_code == 200
        assert admin_client.get("/admin/alerts/alertfiring/").status_code == 200


@pytest.mark.django_db
class TestIncidentActions:
    def test_investigate_then_resolve(self, admin_client, incident):
        admin_client.post(action_url(incident, "investigate_incident"))
        incident.refresh_from_db()
        assert incident.status == IncidentStatus.INVESTIGATING

        admin_client.post(action_url(incident, "resolve_incident"))
        incident.refresh_from_db()
        assert incident.status == IncidentStatus.RESOLVED
        assert incident.resolved_at is not None

        change = incident.events.filter(event_type=IncidentEventType.STATUS_CHANGE).last()
        assert change.actor == "admin"

    def test_reopen_only_from_resolved(self, admin_client, incident):
        admin_client.post(action_url(incident, "reopen_incident"))
        assert not incident.events.filter(event_type=IncidentEventType.STATUS_CHANGE).exists()

        IncidentManager.resolve(incident.pk)
        admin_client.post(action_url(incident, "reopen_incident"))
        incident.refresh_from_db()
        assert incident.status == IncidentStatus.OPEN

    def test_resolve_selected(self, admin_client, incident):
        other = IncidentManager.create_manual("acme", "Search slow")
        response = admin_client.post(
            "/admin/alerts/incident/",
            {"action": "resolve_selected", "_selected_action": [incident.pk, other.pk]},
        )
        assert response.status_code == 302
        incident.refresh_from_db()
        other.refresh_from_db()
        assert incident.status == IncidentStatus.RESOLVED
        assert other.status == IncidentStatus.RESOLVED

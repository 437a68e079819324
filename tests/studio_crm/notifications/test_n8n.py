from datetime import datetime

import httpx
import pytest

from studio_crm.models.appointment import STATUS_CANCELLED, STATUS_CONFIRMED, Appointment
from studio_crm.notifications import n8n


def make_appointment(**overrides) -> Appointment:
    values = {
        'id': 42,
        'client_name': 'Juan Perez',
        'phone': '300 123 4567',
        'country_code': '57',
        'service': 'Corte de pelo',
        'specialist': 'Ana',
        'appointment_at': datetime(2025, 2, 17, 15, 5),
        'status': STATUS_CONFIRMED,
        'price': 50.0,
        'location': 'Sede Principal',
    }
    values.update(overrides)
    return Appointment(**values)


def test_spanish_date_formats() -> None:
    value = datetime(2025, 2, 17, 15, 5)

    assert n8n.format_long_date(value) == '17 de febrero de 2025'
    assert n8n.format_weekday_date(value) == 'lunes, 17 de febrero de 2025'


@pytest.mark.parametrize(
    ('value', 'expected'),
    [
        (datetime(2025, 2, 17, 15, 5), '3:05 PM'),
        (datetime(2025, 2, 17, 0, 30), '12:30 AM'),
        (datetime(2025, 2, 17, 12, 0), '12:00 PM'),
    ],
)
def test_format_time_12h(value: datetime, expected: str) -> None:
    assert n8n.format_time_12h(value) == expected


def test_international_phone_falls_back_to_default_country_code(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr('studio_crm.core.config.DEFAULT_COUNTRY_CODE', '57')

    assert n8n.international_phone('(300) 123-4567') == '+573001234567'
    assert n8n.international_phone('3001234567', '+1') == '+13001234567'


def test_build_create_payload() -> None:
    payload = n8n.build_create_payload(make_appointment(), time_label='3:05 PM')

    assert payload == {
        'action': 'CREATE',
        'customerPhone': '+573001234567',
        'customerName': 'Juan Perez',
        'formattedDate': '17 de febrero de 2025',
        'time': '3:05 PM',
        'location': 'Sede Principal',
        'service': 'Corte de pelo',
        'price': 50.0,
        'appointmentId': 42,
    }


def test_build_update_payload_marks_cancellations() -> None:
    edited = n8n.build_update_payload(make_appointment())
    cancelled = n8n.build_update_payload(make_appointment(status=STATUS_CANCELLED))

    assert edited['action'] == 'EDITED'
    assert edited['date'] == 'lunes, 17 de febrero de 2025'
    assert edited['time'] == '3:05 PM'
    assert cancelled['action'] == 'CANCELLED'


def test_post_to_webhook_without_url_is_not_configured() -> None:
    assert n8n.post_to_webhook('', {'a': 1}) == n8n.STATUS_NOT_CONFIGURED


def test_post_to_webhook_reports_success(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = []

    def fake_post(url, json, timeout):
        calls.append((url, json))
        return httpx.Response(200)

    monkeypatch.setattr(n8n.httpx, 'post', fake_post)

    assert n8n.post_to_webhook('https://n8n.example/webhook/app', {'a': 1}) == n8n.STATUS_SENT
    assert calls == [('https://n8n.example/webhook/app', {'a': 1})]


def test_post_to_webhook_reports_http_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(n8n.httpx, 'post', lambda url, json, timeout: httpx.Response(500, text='boom'))

    assert n8n.post_to_webhook('https://n8n.example/webhook/app', {}) == 'N8N_ERROR: 500'


def test_post_to_webhook_reports_network_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    def failing_post(url, json, timeout):
        raise httpx.ConnectError('connection refused')

    monkeypatch.setattr(n8n.httpx, 'post', failing_post)

    assert n8n.post_to_webhook('https://n8n.example/webhook/app', {}) == n8n.STATUS_NETWORK_ERROR

"""WhatsApp delivery through the n8n webhooks.

The n8n workflow owns the actual WhatsApp provider; this module only shapes
the JSON it expects and reports how the hand-off went.
"""

import logging
import re
from datetime import datetime

import httpx

from studio_crm.core import config
from studio_crm.models.appointment import STATUS_CANCELLED, Appointment

logger = logging.getLogger(__name__)

STATUS_SENT = 'SENT_TO_N8N_OK'
STATUS_NETWORK_ERROR = 'NETWORK_ERROR'
STATUS_NOT_CONFIGURED = 'NOT_CONFIGURED'

ACTION_CREATE = 'CREATE'
ACTION_EDITED = 'EDITED'
ACTION_CANCELLED = 'CANCELLED'

SPANISH_MONTHS = (
    'enero', 'febrero', 'marzo', 'abril', 'mayo', 'junio',
    'julio', 'agosto', 'septiembre', 'octubre', 'noviembre', 'diciembre',
)
SPANISH_WEEKDAYS = ('lunes', 'martes', 'miércoles', 'jueves', 'viernes', 'sábado', 'domingo')


def digits_only(value: str | None) -> str:
    return re.sub(r'\D', '', str(value or ''))


def format_long_date(value: datetime) -> str:
    return f'{value.day} de {SPANISH_MONTHS[value.month - 1]} de {value.year}'


def format_weekday_date(value: datetime) -> str:
    return f'{SPANISH_WEEKDAYS[value.weekday()]}, {format_long_date(value)}'


def format_time_12h(value: datetime) -> str:
    hour = value.hour % 12 or 12
    suffix = 'PM' if value.hour >= 12 else 'AM'
    return f'{hour}:{value.minute:02d} {suffix}'


def international_phone(phone: str | None, country_code: str | None = None) -> str:
    code = digits_only(country_code) or config.DEFAULT_COUNTRY_CODE
    return f'+{code}{digits_only(phone)}'


def build_create_payload(appointment: Appointment, time_label: str | None = None) -> dict:
    return {
        'action': ACTION_CREATE,
        'customerPhone': international_phone(appointment.phone, appointment.country_code),
        'customerName': appointment.client_name,
        'formattedDate': format_long_date(appointment.appointment_at),
        'time': time_label or appointment.appointment_at.strftime('%H:%M'),
        'location': appointment.location,
        'service': appointment.service,
        'price': appointment.price,
        'appointmentId': appointment.id,
    }


def build_update_payload(appointment: Appointment) -> dict:
    return {
        'action': ACTION_CANCELLED if appointment.status == STATUS_CANCELLED else ACTION_EDITED,
        'customerName': appointment.client_name,
        'customerPhone': international_phone(appointment.phone, appointment.country_code),
        'status': appointment.status,
        'service': appointment.service,
        'specialist': appointment.specialist,
        'date': format_weekday_date(appointment.appointment_at),
        'time': format_time_12h(appointment.appointment_at),
        'location': appointment.location,
        'appointmentId': appointment.id,
    }


def post_to_webhook(url: str, payload: dict) -> str:
    """Returns a delivery status string instead of raising."""
    if not url:
        return STATUS_NOT_CONFIGURED

    try:
        response = httpx.post(url, json=payload, timeout=config.N8N_TIMEOUT_SECONDS)
    except httpx.HTTPError:
        logger.exception('Network error calling n8n webhook %s', url)
        return STATUS_NETWORK_ERROR

    if response.is_success:
        return STATUS_SENT

    logger.error('n8n webhook %s answered %s: %s', url, response.status_code, response.text)
    return f'N8N_ERROR: {response.status_code}'


def send_booking_confirmation(appointment: Appointment, time_label: str | None = None) -> str:
    return post_to_webhook(config.N8N_BOOKING_WEBHOOK_URL, build_create_payload(appointment, time_label))


def send_appointment_update(appointment: Appointment) -> str:
    return post_to_webhook(config.N8N_WEBHOOK_URL, build_update_payload(appointment))


def forward_outgoing_message(payload: dict) -> str:
    return post_to_webhook(config.N8N_OUTGOING_WEBHOOK_URL, payload)

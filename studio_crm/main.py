import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from studio_crm.core import config
from studio_crm.database import Base, engine, ensure_appointment_schema, ensure_chat_schema
from studio_crm.models import appointment, booking_request, chat, client, expense, service, specialist  # noqa: F401
from studio_crm.routes import (
    agenda_routes,
    autocomplete_routes,
    booking_routes,
    chat_routes,
    expense_routes,
    report_routes,
)

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)
logging.getLogger('httpx').setLevel(logging.WARNING)

config.validate_runtime_config()

app = FastAPI(title='Studio CRM API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


@app.on_event('startup')
def initialize_database() -> None:
    try:
        Base.metadata.create_all(bind=engine)
        ensure_appointment_schema()
        ensure_chat_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and Postgres credentials.')


@app.get('/')
def root():
    return {'status': 'Studio CRM API Running'}


app.include_router(agenda_routes.router, prefix='/agenda')
app.include_router(booking_routes.router, prefix='/bookings')
app.include_router(chat_routes.router)
app.include_router(autocomplete_routes.router, prefix='/autocomplete')
app.include_router(expense_routes.router, prefix='/expenses')
app.include_router(report_routes.router, prefix='/reports')

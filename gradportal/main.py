import logging

from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError

from gradportal.core import config
from gradportal.database import Base, engine, ensure_profile_schema
from gradportal.models import auth_session, profile, user  # noqa: F401
from gradportal.routes import admin_routes, auth_routes, dashboard_routes

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)

app = FastAPI(title='Graduation Attendance Portal')

logger = logging.getLogger(__name__)


@app.on_event('startup')
def initialize_database() -> None:
    config.validate_runtime_config()
    try:
        Base.metadata.create_all(bind=engine)
        ensure_profile_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL.')


@app.get('/health')
def health():
    return {'status': 'Graduation Attendance Portal Running'}


app.include_router(auth_routes.router)
app.include_router(dashboard_routes.router)
app.include_router(admin_routes.router)

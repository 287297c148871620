import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from handoff_ai import config
from handoff_ai.api import assistant, patients
from handoff_ai.db.session import init_db
from handoff_ai.runtime.registry import get_registry

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    yield
    # pending auto-close timers must not outlive the loop
    get_registry().close_all()


app = FastAPI(title="Handoff AI Clinical Assistant", lifespan=lifespan)

app.include_router(patients.router)
app.include_router(assistant.router)

from fastapi import FastAPI

from tablesync.api.routes import sync_runs, targets
from tablesync.db.session import init_db
from tablesync.logging_config import setup_logging

app = FastAPI(title="tablesync")


@app.on_event("startup")
def on_startup() -> None:
    setup_logging()
    init_db()


app.include_router(sync_runs.router)
app.include_router(targets.router)

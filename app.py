#!/usr/bin/env python3
"""
Entrypoint to run the GitHub environment sync service with `python app.py`.
Reads `.env` from project root and supports HOST/PORT/RELOAD/WORKERS/LOG_LEVEL overrides.
"""
import os
from pathlib import Path

from dotenv import load_dotenv
import uvicorn


def main() -> None:
    load_dotenv(dotenv_path=Path(__file__).with_name(".env"))

    host = os.getenv("HOST", "127.0.0.1")
    port = int(os.getenv("PORT", "8080"))
    reload_enabled = os.getenv("RELOAD", "false").lower() in ("1", "true", "yes", "on")
    # uvicorn ожидает нижний регистр: debug/info/warning/error/critical/trace
    log_level = (os.getenv("LOG_LEVEL", "info") or "info").lower()

    # Одна сессия оператора живёт в памяти процесса, поэтому всегда один воркер
    workers = int(os.getenv("WORKERS", "1") or "1")
    if workers != 1:
        print("envsync keeps session state in memory; forcing WORKERS=1")

    if reload_enabled:
        target = "envsync.main:app"   # <— строка импорта обязательна для reload
        reload_dirs = [str(Path(__file__).parent / "envsync")]
    else:
        # импорт после load_dotenv, чтобы Settings увидели переменные из .env
        from envsync.main import app as fastapi_app
        target = fastapi_app
        reload_dirs = None

    uvicorn.run(
        target,
        host=host,
        port=port,
        reload=reload_enabled,
        log_level=log_level,
        workers=1,
        reload_dirs=reload_dirs,
    )


if __name__ == "__main__":
    main()

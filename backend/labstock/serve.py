import os

import uvicorn


def main() -> None:
    host = os.getenv("HOST", "127.0.0.1")
    port = int(os.getenv("PORT", "8000"))
    reload_enabled = os.getenv("RELOAD", "false").lower() in {"1", "true", "yes", "on"}
    log_level = os.getenv("LOG_LEVEL", "info")

    # One worker only: the store keeps the inventory in process memory.
    uvicorn.run(
        "labstock.main:app",
        host=host,
        port=port,
        reload=reload_enabled,
        log_level=log_level,
        workers=1,
    )


if __name__ == "__main__":
    main()

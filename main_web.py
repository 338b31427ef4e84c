import uvicorn

from core.config import get_config

if __name__ == "__main__":
    cfg = get_config()
    uvicorn.run(
        "web.api:app",
        host=cfg.host,
        port=cfg.port,
        reload=cfg.reload,
    )

import uvicorn
from common.settings import get_settings

if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run("ledger_service.main:create_app", factory=True, host="0.0.0.0", port=settings.port)

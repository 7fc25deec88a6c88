"""Alert relay: forwards dashboard alerts to a Telegram chat."""
import logging
import requests
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from config import AppConfig, RelayConfig

load_dotenv()

logger = logging.getLogger(__name__)

TELEGRAM_TIMEOUT_SECONDS = 10
MISSING_CREDENTIALS = "Missing TELEGRAM_BOT_TOKEN or TELEGRAM_CHAT_ID in .env"

app = FastAPI(title="Fib Dashboard Alert Relay")
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])


def relay_config() -> RelayConfig:
    """Credentials are read per request so a changed .env needs no restart."""
    return AppConfig.from_env().relay


def send_telegram(config: RelayConfig, text: str) -> dict:
    url = f"{config.telegram_api_url}/bot{config.bot_token}/sendMessage"
    response = requests.post(
        url,
        json={"chat_id": config.chat_id, "text": text},
        timeout=TELEGRAM_TIMEOUT_SECONDS
    )
    return response.json()


@app.post("/alert")
async def relay_alert(request: Request):
    """Forward ``{message}`` to Telegram and return Telegram's response."""
    config = relay_config()
    if not config.configured:
        logger.warning(MISSING_CREDENTIALS)
        return {"ok": False, "error": MISSING_CREDENTIALS}

    try:
        body = await request.json()
    except ValueError:
        body = {}
    message = body.get("message") if isinstance(body, dict) else None

    try:
        return await run_in_threadpool(send_telegram, config, message or "(no message)")
    except Exception as e:
        logger.error("Telegram delivery failed: %s", e)
        return {"ok": False, "error": str(e)}


@app.get("/health")
async def health():
    return {"ok": True, "configured": relay_config().configured}

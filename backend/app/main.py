import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from app.config import get_settings, warn_missing
from app.routers import etsy_oauth, listing, shop
from app.utils.etsy_client import EtsyAPIError, EtsyAuthRequired

settings = get_settings()
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Etsy backend demo")

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, replace with your frontend domain
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(etsy_oauth.router)
app.include_router(listing.router)
app.include_router(shop.router)


@app.exception_handler(EtsyAPIError)
async def etsy_api_error_handler(request: Request, exc: EtsyAPIError):
    logger.error(
        "%s %s: Etsy error (status %s): %s",
        request.method, request.url.path, exc.status_code, exc.text,
    )
    status_code = exc.status_code or 500
    error = exc.body if exc.body is not None else exc.message
    return JSONResponse(status_code=status_code, content={"error": error})


@app.exception_handler(EtsyAuthRequired)
async def auth_required_handler(request: Request, exc: EtsyAuthRequired):
    return PlainTextResponse(str(exc), status_code=401)


@app.get("/", response_class=PlainTextResponse)
def health():
    return "Etsy backend demo running"


@app.on_event("startup")
def on_startup():
    warn_missing(settings)
    logger.info("Etsy backend demo running at %s", settings.base_url)
    logger.info("Visit %s/auth/login to start the OAuth (PKCE) flow", settings.base_url)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.port)

import logging

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    datefmt="%H:%M:%S",
)
# Quiet noisy HTTP logs unless debugging
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from adstudio import config
from adstudio.errors import AdStudioError
from adstudio.routes.analyses import router as analyses_router
from adstudio.routes.clients import router as clients_router
from adstudio.routes.concepts import router as concepts_router
from adstudio.routes.settings import router as settings_router

logger = logging.getLogger(__name__)

app = FastAPI(title="Ad Studio API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(clients_router)
app.include_router(analyses_router)
app.include_router(concepts_router)
app.include_router(settings_router)


@app.exception_handler(AdStudioError)
async def handle_domain_error(request: Request, exc: AdStudioError):
    logger.warning(f"{request.method} {request.url.path} failed: {exc.kind}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.get("/")
def root():
    return {"message": "Ad Studio API is running"}


@app.get("/health")
def health():
    return {"status": "ok"}

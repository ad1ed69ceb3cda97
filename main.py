import logging
import os
from contextlib import asynccontextmanager

import aiohttp
import firebase_admin
from dotenv import load_dotenv
from fastapi import FastAPI
from firebase_admin import credentials
from starlette.middleware.cors import CORSMiddleware

from context import RequestContextMiddleware, RequestIdFilter
from routes.ai_content import router as ai_content_router
from routes.auth import router as auth_router
from routes.posts import router as posts_router
from routes.text_reader import router as text_reader_router
from services.content_generator import ContentGenerator
from services.firestore import FirestoreDB
from services.identity import FirebaseIdentityService
from services.llm.gemini import GeminiLLM
from services.posts import PostService
from services.speech import SpeechSynthesizer, TextReaderService
from services.tokens import TokenService

load_dotenv()

# ─── logging ────────────────────────────────────────────────
_log_handler = logging.StreamHandler()
_log_handler.addFilter(RequestIdFilter())
logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper(),
                    format="%(levelname)s [%(request_id)s] %(name)s: %(message)s",
                    handlers=[_log_handler])
logger = logging.getLogger(__name__)

# ─── configuration ──────────────────────────────────────────
FIREBASE_CREDENTIALS = os.environ.get("FIREBASE_CREDENTIALS", "./firebase.json")
FIREBASE_WEB_API_KEY = os.environ.get("FIREBASE_WEB_API_KEY", "")
POSTS_COLLECTION = os.environ.get("POSTS_COLLECTION", "posts")

JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", "")
JWT_ISSUER = os.environ.get("JWT_ISSUER", "blog-backend")
JWT_AUDIENCE = os.environ.get("JWT_AUDIENCE", "blog-frontend")

GEMINI_MODEL = os.environ.get("GEMINI_MODEL", "gemini-2.0-flash")

ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.environ.get("ALLOWED_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Initialize Firebase Admin SDK
    cred = credentials.Certificate(FIREBASE_CREDENTIALS)
    firebase_app = firebase_admin.initialize_app(cred)

    if not FIREBASE_WEB_API_KEY:
        logger.warning("FIREBASE_WEB_API_KEY is not set; auth routes will fail")

    # Initialize dependencies
    session = aiohttp.ClientSession()
    firestore = FirestoreDB(firebase_app, POSTS_COLLECTION)
    token_service = TokenService(JWT_SECRET_KEY, JWT_ISSUER, JWT_AUDIENCE)
    identity_service = FirebaseIdentityService(session, FIREBASE_WEB_API_KEY, firebase_app)
    post_service = PostService(firestore)
    gemini_llm = GeminiLLM(model=GEMINI_MODEL)

    app.state.token_service = token_service
    app.state.identity_service = identity_service
    app.state.post_service = post_service
    app.state.content_generator = ContentGenerator(gemini_llm)
    app.state.text_reader = TextReaderService(post_service, SpeechSynthesizer())

    logger.info("Blog backend started (collection=%s, model=%s)", POSTS_COLLECTION, GEMINI_MODEL)
    yield
    # Cleanup resources
    await session.close()
    firebase_admin.delete_app(firebase_app)


app = FastAPI(lifespan=lifespan)

# middleware to set request context
app.add_middleware(RequestContextMiddleware)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"]
)

# Include routers
app.include_router(ai_content_router, prefix="/api/ai-content", tags=["ai-content"])
app.include_router(auth_router, prefix="/api/auth", tags=["auth"])
app.include_router(posts_router, prefix="/api/blog", tags=["blog"])
app.include_router(text_reader_router, prefix="/api/TextReader", tags=["text-reader"])

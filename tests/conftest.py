from typing import Dict, Optional

import pytest
from fastapi.testclient import TestClient

from dependencies import (
    get_content_generator,
    get_identity_service,
    get_post_service,
    get_text_reader,
    get_token_service,
)
from main import app
from services.content_generator import ContentGenerator
from services.posts import PostService
from services.speech import TextReaderService
from services.tokens import TokenService
from tests.fakes import FakeChat, FakeIdentity, FakeLLM, FakeSynthesizer, InMemoryFirestore

TEST_SECRET = "test-secret-key-that-is-long-enough-for-hs256"
TEST_ISSUER = "blog-backend"
TEST_AUDIENCE = "blog-frontend"


@pytest.fixture
def token_service() -> TokenService:
    return TokenService(TEST_SECRET, TEST_ISSUER, TEST_AUDIENCE)


@pytest.fixture
def db() -> InMemoryFirestore:
    return InMemoryFirestore()


@pytest.fixture
def post_service(db) -> PostService:
    return PostService(db)


@pytest.fixture
def chat() -> FakeChat:
    return FakeChat()


@pytest.fixture
def content_generator(chat) -> ContentGenerator:
    return ContentGenerator(FakeLLM(chat))


@pytest.fixture
def identity() -> FakeIdentity:
    return FakeIdentity()


@pytest.fixture
def synthesizer() -> FakeSynthesizer:
    return FakeSynthesizer()


@pytest.fixture
def text_reader(post_service, synthesizer) -> TextReaderService:
    return TextReaderService(post_service, synthesizer)


@pytest.fixture
def client(token_service, post_service, identity, content_generator, text_reader):
    app.dependency_overrides[get_token_service] = lambda: token_service
    app.dependency_overrides[get_post_service] = lambda: post_service
    app.dependency_overrides[get_identity_service] = lambda: identity
    app.dependency_overrides[get_content_generator] = lambda: content_generator
    app.dependency_overrides[get_text_reader] = lambda: text_reader
    # no lifespan: nothing here talks to Firebase, Gemini or the speech engine
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(token_service):
    def make(user_id: str = "u1", name: str = "User One", email: Optional[str] = None) -> Dict[str, str]:
        token = token_service.issue(user_id, email or f"{user_id}@example.com", name)
        return {"Authorization": f"Bearer {token}"}

    return make

from __future__ import annotations

import json
from contextlib import contextmanager
from typing import Any

from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from carecall.api.deps import get_db_session, get_mood_classifier, get_token_verifier
from carecall.core.app import create_app
from carecall.core.config import AppSettings
from carecall.models import Base
from carecall.services.auth import SessionTokenVerifier

from conftest import TEST_JWT_SECRET, make_session_token


SLEEP_JUDGMENT = json.dumps(
    {"mood": 2, "mood_description": "Stressed about sleep", "emotions": ["anxiety", "fatigue"]}
)


class StubClassifier:
    def __init__(self, content: str | None = SLEEP_JUDGMENT, error: Exception | None = None) -> None:
        self.content = content
        self.error = error
        self.prompts: list[str] = []

    async def classify(self, prompt: str, **_: Any) -> str | None:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.content


@contextmanager
def sqlite_client(classifier: StubClassifier):
    app = create_app()
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    session_factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    verifier = SessionTokenVerifier(AppSettings(JWT_SECRET_KEY=TEST_JWT_SECRET))
    schema_ready = False

    async def override_session():
        nonlocal schema_ready
        if not schema_ready:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            schema_ready = True
        session = session_factory()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def override_classifier():
        return classifier

    async def override_verifier():
        return verifier

    app.dependency_overrides[get_db_session] = override_session
    app.dependency_overrides[get_mood_classifier] = override_classifier
    app.dependency_overrides[get_token_verifier] = override_verifier
    try:
        with TestClient(app) as client:
            yield client
    finally:
        app.dependency_overrides.clear()


def test_call_event_becomes_queryable_report_for_profile_phone() -> None:
    classifier = StubClassifier()
    headers = {"Authorization": f"Bearer {make_session_token('patient-7')}"}
    event = {
        "type": "post_call_transcription",
        "event_timestamp": 1739537297,
        "data": {
            "conversation_id": "conv-flow-1",
            "user_id": "platform-user",
            "transcript": [
                {"role": "agent", "message": "How did you sleep?"},
                {"role": "user", "message": "Barely at all."},
            ],
        },
    }

    with sqlite_client(classifier) as client:
        saved = client.post(
            "/api/user-info",
            json={"phone_number": "+15557654321", "age": "52", "therapy_history": "CBT in 2021"},
            headers=headers,
        )
        created = client.post("/api/phone-call-reports/webhook", json=event)
        replayed = client.post("/api/phone-call-reports/webhook", json=event)
        listed = client.get(
            "/api/phone-call-reports",
            params={"phone_number": "+15557654321"},
            headers=headers,
        )

    assert saved.status_code == 200
    assert saved.json()["data"]["information"].startswith("Age: 52")

    assert created.status_code == 201
    report = created.json()["data"]
    assert report["user_id"] == "patient-7"
    assert report["conversation_id"] == "conv-flow-1"
    assert report["mood"] == 2
    assert report["emotions"] == ["anxiety", "fatigue"]

    assert replayed.status_code == 201
    assert replayed.json()["message"] == "Phone call report already recorded for this conversation"
    assert replayed.json()["data"]["id"] == report["id"]
    assert len(classifier.prompts) == 1
    assert "- Therapy History: CBT in 2021" in classifier.prompts[0]
    assert "user: Barely at all." in classifier.prompts[0]

    assert listed.status_code == 200
    body = listed.json()
    assert [item["id"] for item in body["data"]] == [report["id"]]
    assert body["pagination"]["totalCount"] == 1
    assert body["pagination"]["hasNextPage"] is False


def _event(conversation_id: str) -> dict[str, Any]:
    return {
        "type": "post_call_transcription",
        "event_timestamp": 1739537297,
        "data": {
            "conversation_id": conversation_id,
            "transcript": [{"role": "user", "message": "Not sure how I feel."}],
        },
    }


def _assert_default_report(response, headers: dict[str, str], client: TestClient) -> None:
    assert response.status_code == 201
    body = response.json()
    assert body["mood_analysis"] == {
        "mood": 3,
        "mood_description": "Unable to analyze mood",
        "emotions": [],
    }
    stored = body["data"]
    assert stored["mood"] == 3
    assert stored["mood_description"] == "Unable to analyze mood"
    assert stored["emotions"] == []

    listed = client.get(
        "/api/phone-call-reports",
        params={"phone_number": "+15550009999"},
        headers=headers,
    )
    assert [item["id"] for item in listed.json()["data"]] == [stored["id"]]
    assert listed.json()["data"][0]["mood"] == 3


def test_classifier_failure_still_stores_default_report() -> None:
    classifier = StubClassifier(error=RuntimeError("model endpoint unavailable"))
    headers = {"Authorization": f"Bearer {make_session_token('patient-8')}"}

    with sqlite_client(classifier) as client:
        saved = client.post(
            "/api/user-info", json={"phone_number": "+15550009999", "age": "61"}, headers=headers
        )
        assert saved.status_code == 200
        response = client.post("/api/phone-call-reports/webhook", json=_event("conv-error"))
        _assert_default_report(response, headers, client)

    assert len(classifier.prompts) == 1


def test_schema_violating_judgment_stores_default_report() -> None:
    classifier = StubClassifier(content=json.dumps({"mood": 9, "extra": 1}))
    headers = {"Authorization": f"Bearer {make_session_token('patient-9')}"}

    with sqlite_client(classifier) as client:
        saved = client.post(
            "/api/user-info", json={"phone_number": "+15550009999", "age": "61"}, headers=headers
        )
        assert saved.status_code == 200
        response = client.post("/api/phone-call-reports/webhook", json=_event("conv-bad-json"))
        _assert_default_report(response, headers, client)

    assert len(classifier.prompts) == 1

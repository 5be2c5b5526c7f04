from __future__ import annotations

import asyncio
import random
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from datasource.providers import StaticSource
from poll_core.engine import PollEngine
from poll_core.selection import UnvisitedSelection
from service.app import create_app
from snapshots import PeriodicSaver, TallyFile

RECORDS = [
    {"Name": "George Washington", "Office": "President", "Party": "Unaffiliated"},
    {"Name": "John F. Kennedy", "Office": "President", "Quote": "Ask not."},
    {"Name": "Abraham Lincoln", "Office": "President", "Party": "Republican"},
]
SLUGS = {"george_washington", "john_f_kennedy", "abraham_lincoln"}


@pytest.fixture
def source() -> StaticSource:
    return StaticSource("static", records=RECORDS)


@pytest.fixture
def engine(tmp_path: Path, source: StaticSource) -> PollEngine:
    engine = PollEngine(
        TallyFile(tmp_path / "votes.data"),
        selection=UnvisitedSelection(rng=random.Random(0)),
    )
    _ = engine.refresh(source)
    return engine


@pytest.fixture
def client(engine: PollEngine, source: StaticSource) -> TestClient:
    return TestClient(create_app(engine, session_secret="test-secret", source=source))


def _next_slug(client: TestClient) -> str:
    response = client.get("/", follow_redirects=False)
    assert response.status_code == 302
    return response.headers["location"].rsplit("/", 1)[-1]


def test_session_sees_every_candidate_before_repeating(client: TestClient) -> None:
    seen = []
    for _ in range(3):
        slug = _next_slug(client)
        assert client.get(f"/vote/{slug}").status_code == 200
        seen.append(slug)

    assert set(seen) == SLUGS

    # exhausted: the coverage resets and everything is selectable again
    assert _next_slug(client) in SLUGS


def test_vote_page_document(client: TestClient) -> None:
    response = client.get("/vote/john_f_kennedy")
    assert response.status_code == 200
    body = response.json()
    assert body["name"] == "John F. Kennedy"
    assert body["quote"] == "Ask not."


def test_cast_vote_redirects_to_stats(client: TestClient) -> None:
    response = client.post("/vote/abraham_lincoln/hot", follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"] == "/stats/abraham_lincoln"

    _ = client.post("/vote/abraham_lincoln/not")
    _ = client.post("/vote/abraham_lincoln/not")

    stats = client.get("/stats/abraham_lincoln").json()
    assert (stats["hot"], stats["not"], stats["score"]) == (1, 2, -1)


def test_unknown_slug_is_404(client: TestClient, engine: PollEngine) -> None:
    assert client.get("/vote/nobody").status_code == 404
    assert client.get("/stats/nobody").status_code == 404
    assert client.post("/vote/nobody/hot").status_code == 404
    assert all(candidate.hot == 0 for candidate in engine.list_candidates())


def test_invalid_direction_is_rejected(client: TestClient) -> None:
    assert client.post("/vote/abraham_lincoln/lukewarm").status_code == 422


def test_index_lists_summaries(client: TestClient) -> None:
    _ = client.post("/vote/george_washington/hot")
    body = client.get("/index.json").json()

    assert [item["slug"] for item in body] == sorted(SLUGS)
    assert {item["slug"]: item["score"] for item in body}["george_washington"] == 1


def test_reload_picks_up_new_candidates(client: TestClient, source: StaticSource) -> None:
    source.set_records(RECORDS + [{"Name": "Thomas Jefferson"}])

    response = client.post("/reload_data")

    assert response.status_code == 200
    assert response.json()["inserted"] == 1
    assert response.json()["membership_changed"] is True
    assert client.get("/vote/thomas_jefferson").status_code == 200


def test_reload_without_source(engine: PollEngine) -> None:
    client = TestClient(create_app(engine, session_secret="test-secret"))
    assert client.post("/reload_data").status_code == 503


def test_save_data_writes_snapshot(client: TestClient, tmp_path: Path) -> None:
    _ = client.post("/vote/john_f_kennedy/hot")

    response = client.post("/save_data")

    assert response.json() == {"saved": 3}
    assert "john_f_kennedy,1,0\n" in (tmp_path / "votes.data").read_text(encoding="utf-8")


def test_empty_engine_root_is_404() -> None:
    client = TestClient(create_app(PollEngine(), session_secret="test-secret"))
    assert client.get("/", follow_redirects=False).status_code == 404


def test_lifespan_runs_final_save(engine: PollEngine, tmp_path: Path) -> None:
    saver = PeriodicSaver(engine.save_snapshot, 3600)
    with TestClient(create_app(engine, session_secret="test-secret", saver=saver)) as client:
        assert saver.running is True
        _ = client.post("/vote/george_washington/hot")

    assert saver.running is False
    assert "george_washington,1,0\n" in (tmp_path / "votes.data").read_text(encoding="utf-8")


def test_lifespan_final_save_runs_off_the_event_loop(engine: PollEngine) -> None:
    loop_running_during_save: list[bool] = []

    def save() -> None:
        try:
            _ = asyncio.get_running_loop()
        except RuntimeError:
            loop_running_during_save.append(False)
        else:
            loop_running_during_save.append(True)

    saver = PeriodicSaver(save, 3600)
    with TestClient(create_app(engine, session_secret="test-secret", saver=saver)):
        pass

    assert loop_running_during_save == [False]


def test_reload_without_new_candidates_keeps_membership(client: TestClient) -> None:
    body = client.post("/reload_data").json()

    assert body["inserted"] == 0
    assert body["updated"] == 3
    assert body["membership_changed"] is False

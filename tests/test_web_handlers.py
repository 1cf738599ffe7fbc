"""HTTP, WebSocket and SSE surface tests against the aiohttp app."""

import asyncio

import orjson
import pytest
from structlog.testing import capture_logs

from product_visuals.app import create_app
from product_visuals.data.constants import EventName, JobStatus
from product_visuals.dto.events import GenerationEvent
from product_visuals.dto.generation_job import GenerationJob
from product_visuals.services.artifact_store import encode_key
from product_visuals.services.broadcast import Subscriber
from product_visuals.utils.auth import issue_token
from product_visuals.web_handlers.rooms_ws import _forward


@pytest.fixture
def app(repository, queue, artifact_store, adapter):
    return create_app(repository, queue, artifact_store, adapter, run_worker=False, sse_keepalive_s=0.05)


@pytest.fixture
async def client(aiohttp_client, app):
    return await aiohttp_client(app)


async def _read_sse(resp) -> list[tuple[str, dict]]:
    """Reads the remaining body and parses `event:`/`data:` records."""
    body = (await resp.content.read()).decode()
    records = []
    for block in body.split("\n\n"):
        lines = [line for line in block.split("\n") if line and not line.startswith(":")]
        if not lines:
            continue
        fields = dict(line.split(": ", 1) for line in lines)
        records.append((fields["event"], orjson.loads(fields["data"])))
    return records


class TestJobs:
    async def test_get_generation(self, client, job):
        resp = await client.get("/generations/job-1")
        assert resp.status == 200
        data = await resp.json()
        assert data["id"] == "job-1"
        assert data["status"] == "pending"
        assert data["progress_percent"] == 0

    async def test_get_missing(self, client):
        resp = await client.get("/generations/nope")
        assert resp.status == 404

    async def test_enqueue(self, client, queue, job):
        resp = await client.post("/generations/job-1/enqueue")
        assert resp.status == 202
        assert await resp.json() == {"generation_id": "job-1", "status": "pending"}
        assert queue.pending() == ["job-1"]

    async def test_enqueue_finished_job(self, client, repository, queue):
        finished = GenerationJob(id="done", product_id="prod-1", scene_id="scene-1")
        finished.fail("gave up")
        await repository.save_job(finished)

        resp = await client.post("/generations/done/enqueue")

        assert resp.status == 409
        assert queue.pending() == []

    async def test_enqueue_missing(self, client):
        resp = await client.post("/generations/nope/enqueue")
        assert resp.status == 404


class TestArtifacts:
    async def test_serve(self, client, artifact_store):
        await artifact_store.put("job-1_0_duo", b"\x89PNG", "image/png")
        resp = await client.get(f"/artifacts/{encode_key('job-1_0_duo')}")
        assert resp.status == 200
        assert resp.content_type == "image/png"
        assert await resp.read() == b"\x89PNG"

    async def test_bad_id(self, client):
        resp = await client.get("/artifacts/abc")
        assert resp.status == 400

    async def test_unknown(self, client):
        resp = await client.get(f"/artifacts/{encode_key('nothing')}")
        assert resp.status == 404


class TestRoomsWebSocket:
    async def test_subscribe_and_receive(self, client, app):
        ws = await client.ws_connect("/ws/generations")
        await ws.send_str(orjson.dumps({"action": "subscribe", "generation_id": "job-1"}).decode())
        assert await ws.receive_json() == {"event": "subscribed", "data": {"generation_id": "job-1"}}

        await app["publisher"].emit(EventName.PROGRESS, "job-2", percent=50)
        await app["publisher"].emit(EventName.PROGRESS, "job-1", percent=17, completed=1, total=6)

        frame = await asyncio.wait_for(ws.receive_json(), timeout=1)
        assert frame["event"] == "progress"
        assert frame["data"]["generation_id"] == "job-1"
        assert frame["data"]["percent"] == 17
        assert "timestamp" in frame["data"]
        await ws.close()

    async def test_unsubscribe(self, client, app):
        ws = await client.ws_connect("/ws/generations")
        await ws.send_str(orjson.dumps({"action": "subscribe", "generation_id": "job-1"}).decode())
        await ws.receive_json()
        await ws.send_str(orjson.dumps({"action": "unsubscribe", "generation_id": "job-1"}).decode())
        assert (await ws.receive_json())["event"] == "unsubscribed"
        assert app["broker"].room_size("job:job-1") == 0
        await ws.close()

    async def test_malformed_and_unknown(self, client):
        ws = await client.ws_connect("/ws/generations")
        await ws.send_str("not json")
        assert (await ws.receive_json())["event"] == "error"
        await ws.send_str(orjson.dumps({"action": "dance", "generation_id": "job-1"}).decode())
        frame = await ws.receive_json()
        assert frame == {"event": "error", "data": {"message": "Unknown action: dance"}}
        await ws.close()

    async def test_forwarder_stops_on_reset_connection(self):
        class ResetSocket:
            closed = False

            async def send_str(self, data):
                raise ConnectionResetError("peer gone")

        subscriber = Subscriber()
        subscriber.deliver(GenerationEvent(event=EventName.PROGRESS, job_id="job-1", data={"percent": 17}))

        with capture_logs() as logs:
            await asyncio.wait_for(_forward(ResetSocket(), subscriber), timeout=1)

        assert logs[0]["event_name"] == "progress"

    async def test_disconnect_leaves_rooms(self, client, app):
        ws = await client.ws_connect("/ws/generations")
        await ws.send_str(orjson.dumps({"action": "subscribe", "generation_id": "job-1"}).decode())
        await ws.receive_json()
        await ws.close()
        for _ in range(50):
            if app["broker"].room_size("job:job-1") == 0:
                break
            await asyncio.sleep(0.01)
        assert app["broker"].room_size("job:job-1") == 0


class TestEventStream:
    async def test_stream_until_complete(self, client, app):
        resp = await client.get("/generations/job-1/stream")
        assert resp.status == 200
        assert resp.headers["Content-Type"].startswith("text/event-stream")
        assert await resp.content.readline() == b": connected\n"

        await app["publisher"].emit(EventName.PROGRESS, "job-1", percent=17)
        await app["publisher"].emit(EventName.PROGRESS, "job-2", percent=99)
        await app["publisher"].emit(EventName.COMPLETE, "job-1", status="completed")

        records = await asyncio.wait_for(_read_sse(resp), timeout=2)
        assert [name for name, _ in records] == ["progress", "complete"]
        name, payload = records[0]
        assert payload["generation_id"] == "job-1"
        assert payload["data"] == {"percent": 17}
        assert len(app["event_stream"]) == 0

    async def test_keepalive(self, client, app):
        resp = await client.get("/generations/job-1/stream")
        await resp.content.readline()
        await resp.content.readline()
        assert await asyncio.wait_for(resp.content.readline(), timeout=1) == b": keepalive\n"
        await app["publisher"].emit(EventName.COMPLETE, "job-1", status="failed")
        await asyncio.wait_for(_read_sse(resp), timeout=2)

    async def test_token_filters_by_owner(self, client, app):
        token = issue_token("owner-1")
        resp = await client.get("/generations/job-1/stream", headers={"Authorization": f"Bearer {token}"})
        await resp.content.readline()

        await app["publisher"].emit(EventName.PROGRESS, "job-1", "owner-2", percent=17)
        await app["publisher"].emit(EventName.COMPLETE, "job-1", "owner-1", status="completed")

        records = await asyncio.wait_for(_read_sse(resp), timeout=2)
        assert [name for name, _ in records] == ["complete"]

    @pytest.mark.parametrize("token", ["forged.deadbeef", "owner.é"])
    async def test_invalid_token_falls_back(self, client, app, token):
        resp = await client.get("/generations/job-1/stream", params={"token": token})
        assert resp.status == 200
        await resp.content.readline()

        await app["publisher"].emit(EventName.PROGRESS, "job-1", "owner-2", percent=17)
        await app["publisher"].emit(EventName.COMPLETE, "job-1", "owner-1", status="completed")

        records = await asyncio.wait_for(_read_sse(resp), timeout=2)
        assert [name for name, _ in records] == ["progress", "complete"]


class TestWorkerApp:
    async def test_enqueued_job_completes(self, aiohttp_client, repository, queue, artifact_store, adapter, job):
        app = create_app(repository, queue, artifact_store, adapter, run_worker=True)
        client = await aiohttp_client(app)

        resp = await client.post("/generations/job-1/enqueue")
        assert resp.status == 202

        status = None
        for _ in range(200):
            status = (await (await client.get("/generations/job-1")).json())["status"]
            if status == JobStatus.COMPLETED.value:
                break
            await asyncio.sleep(0.02)
        assert status == "completed"

        artifact_ref = (await repository.get_job("job-1")).results[0].artifact_ref
        key = artifact_ref.rsplit("/", 1)[1]
        image = await client.get(f"/artifacts/{key}")
        assert image.status == 200
        assert image.content_type == "image/png"

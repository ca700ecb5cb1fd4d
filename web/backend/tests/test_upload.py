"""Tests for the upload, re-transcode and delete endpoints."""

from pathlib import Path
from unittest.mock import patch

import pytest

from riffstream.core.cache import track_meta_key
from riffstream.domain.media.models import ProbeResult


def fake_renditions(tiers=("low", "medium", "high"), payload=b"encoded"):
    def transcode(source, output_dir, base_name, config, upload_dir):
        result = {}
        for tier in tiers:
            output = output_dir / f"{base_name}_{tier}.mp3"
            output.write_bytes(payload + tier.encode())
            result[tier] = output.relative_to(upload_dir).as_posix()
        return result

    return transcode


@pytest.fixture
def pipeline():
    """Patch the probe, waveform and transcode steps of ingest."""
    with patch(
        "riffstream.domain.media.ingest.probe_audio",
        return_value=ProbeResult(180, 1411, 44100),
    ) as probe, patch(
        "riffstream.domain.media.ingest.generate_waveform",
        return_value=[0.2, 0.8],
    ) as waveform, patch(
        "riffstream.domain.media.ingest.transcode_renditions",
        side_effect=fake_renditions(),
    ) as transcode:
        yield probe, waveform, transcode


def upload(client, headers, filename="song.wav", data=b"RIFFDATA" * 32, **form):
    fields = {"title": "My Song", **form}
    return client.post(
        "/api/upload/track",
        files={"audio": (filename, data, "audio/wav")},
        data=fields,
        headers=headers,
    )


class TestUploadTrack:
    """Test multipart ingest."""

    def test_upload_creates_track(self, client, auth, pipeline, store):
        response = upload(client, auth("artist-1"), duration="179.8")

        assert response.status_code == 201
        body = response.json()
        assert body["artistId"] == "artist-1"
        assert body["title"] == "My Song"
        assert body["durationSeconds"] == 180
        assert body["isPublic"] is True
        assert body["availableQualities"] == ["low", "medium", "high", "lossless"]
        assert body["waveform"] == [0.2, 0.8]
        assert body["fileSizeBytes"] == 256

        track = store.get_track(body["id"])
        assert track.file_path.endswith(".wav")
        assert set(track.rendition_paths) == {"low", "medium", "high"}

    def test_uploaded_track_streams(self, client, auth, pipeline):
        track_id = upload(client, auth()).json()["id"]

        response = client.get(f"/api/stream/{track_id}?quality=high")

        assert response.status_code == 200
        assert response.content == b"encodedhigh"

    def test_private_upload(self, client, auth, pipeline):
        response = upload(client, auth(), isPublic="false")

        assert response.json()["isPublic"] is False
        assert client.get(f"/api/stream/{response.json()['id']}").status_code == 403

    def test_failed_transcodes_still_upload(self, client, auth, pipeline):
        """Test that an upload with no renditions is created and plays the original."""
        pipeline[2].side_effect = RuntimeError("ffmpeg missing")

        response = upload(client, auth(), data=b"ORIGINAL")

        assert response.status_code == 201
        assert response.json()["availableQualities"] == ["lossless"]
        stream = client.get(f"/api/stream/{response.json()['id']}?quality=low")
        assert stream.content == b"ORIGINAL"

    def test_requires_authentication(self, client, pipeline):
        response = upload(client, {})

        assert response.status_code == 401
        assert response.json() == {"error": "Authentication required"}

    def test_missing_title(self, client, auth, pipeline):
        response = upload(client, auth(), title="  ")

        assert response.status_code == 400
        assert response.json() == {"error": "Track title is required"}

    def test_bad_extension(self, client, auth, pipeline, config):
        response = upload(client, auth(), filename="notes.txt")

        assert response.status_code == 400
        assert "Invalid audio format" in response.json()["error"]
        assert list(config.storage.audio_dir.iterdir()) == []

    def test_too_large(self, client, auth, pipeline, config):
        config.storage.max_file_size = 100

        response = upload(client, auth(), data=b"x" * 101)

        assert response.status_code == 413
        assert list(config.storage.audio_dir.iterdir()) == []

    def test_empty_file(self, client, auth, pipeline):
        response = upload(client, auth(), data=b"")

        assert response.status_code == 400


class TestRetranscode:
    """Test owner-triggered rendition rebuilds."""

    def test_owner_retranscodes(self, client, auth, make_track, config):
        make_track("t1", renditions={"medium": b"OLD"})
        client.get("/api/stream/t1")  # warm the metadata cache

        with patch(
            "riffstream.domain.media.ingest.transcode_renditions",
            side_effect=fake_renditions(payload=b"NEW"),
        ):
            response = client.post("/api/upload/track/t1/retranscode", headers=auth("artist-1"))

        assert response.status_code == 200
        assert response.json() == {
            "trackId": "t1",
            "availableQualities": ["low", "medium", "high", "lossless"],
        }
        assert client.get("/api/stream/t1").content == b"NEWmedium"
        assert not (config.storage.audio_dir / "t1_medium.mp3").exists()

    def test_other_user_forbidden(self, client, auth, make_track):
        make_track("t1")

        response = client.post("/api/upload/track/t1/retranscode", headers=auth("intruder"))

        assert response.status_code == 403

    def test_missing_track(self, client, auth):
        response = client.post("/api/upload/track/nope/retranscode", headers=auth())

        assert response.status_code == 404

    def test_missing_original_conflict(self, client, auth, make_track, config):
        make_track("t1")
        (config.storage.audio_dir / "t1.flac").unlink()

        response = client.post("/api/upload/track/t1/retranscode", headers=auth())

        assert response.status_code == 409


class TestDeleteTrack:
    def test_owner_deletes(self, client, auth, make_track, config):
        make_track("t1", renditions={"low": b"L"})
        client.get("/api/stream/t1")

        response = client.delete("/api/upload/track/t1", headers=auth("artist-1"))

        assert response.status_code == 200
        assert response.json() == {"message": "Track deleted"}
        assert client.app.state.track_cache.get(track_meta_key("t1")) is None
        assert client.get("/api/stream/t1").status_code == 404
        assert list(config.storage.audio_dir.iterdir()) == []

    def test_other_user_forbidden(self, client, auth, make_track, store):
        make_track("t1")

        response = client.delete("/api/upload/track/t1", headers=auth("intruder"))

        assert response.status_code == 403
        assert store.get_track("t1") is not None

    def test_requires_authentication(self, client, make_track):
        make_track("t1")

        assert client.delete("/api/upload/track/t1").status_code == 401

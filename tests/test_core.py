import threading

import pytest

from video2doc import core
from video2doc.core import ConversionResult, Status, convert, start_conversion
from video2doc.errors import DurationUnknown


BLACK = (0, 0, 0)
WHITE = (255, 255, 255)


@pytest.fixture
def video(tmp_path):
    path = tmp_path / "lecture.mp4"
    path.write_bytes(b"not really a video")
    return path


@pytest.fixture
def slides_engine(fake_engine_factory, duration_log, make_png):
    """40 s of video: four sampled frames, two distinct slides."""
    files = {
        f"output_{i:04d}.png": make_png(64, 36, color)
        for i, color in enumerate([BLACK, BLACK, WHITE, WHITE], start=1)
    }
    return fake_engine_factory(files=files, log_lines=duration_log)


class TestConvert:

    def test_ok(self, slides_engine, video, settings):
        messages = []
        result = convert(video, settings=settings, engine=slides_engine,
                         progress_cb=messages.append)
        assert result.status is Status.OK
        assert result.ok
        assert result.pdf.startswith(b"%PDF")
        assert result.duration == 40.0
        assert result.expected_frames == 4
        assert (result.frames_read, result.kept, result.discarded, result.pages) == (4, 2, 2, 2)
        assert [k.ordinal for k in result.frames] == [1, 3]
        assert messages

    def test_probe_runs_before_extraction(self, slides_engine, video, settings):
        convert(video, settings=settings, engine=slides_engine)
        assert slides_engine.commands[0] == ["-hide_banner", "-i", "input.mp4"]
        assert "-vf" in slides_engine.commands[1]
        assert len(slides_engine.commands) == 2

    def test_source_copied_into_engine(self, slides_engine, video, settings):
        convert(video, settings=settings, engine=slides_engine)
        assert slides_engine.files["input.mp4"] == b"not really a video"

    def test_settings_drive_sampling(self, slides_engine, video, settings):
        settings.sampling.interval_seconds = 20
        result = convert(video, settings=settings, engine=slides_engine)
        assert "fps=1/20" in slides_engine.commands[1]
        assert result.expected_frames == 2

    def test_duration_unknown_reported(self, fake_engine_factory, video, settings):
        engine = fake_engine_factory(log_lines=["At least one output file must be specified"])
        result = convert(video, settings=settings, engine=engine)
        assert result.status is Status.DURATION_UNKNOWN
        assert result.pdf is None
        assert len(engine.commands) == 1

    def test_duration_unknown_raises_when_configured(self, fake_engine_factory, video, settings):
        settings.sampling.on_unknown_duration = "error"
        engine = fake_engine_factory(log_lines=[])
        with pytest.raises(DurationUnknown):
            convert(video, settings=settings, engine=engine)

    def test_no_frames(self, fake_engine_factory, duration_log, video, settings):
        engine = fake_engine_factory(log_lines=duration_log)
        result = convert(video, settings=settings, engine=engine)
        assert result.status is Status.NO_FRAMES
        assert result.pdf is None
        assert result.stop_reason == "missing output_0001.png"

    def test_missing_local_file(self, slides_engine, tmp_path, settings):
        result = convert(tmp_path / "nope.mp4", settings=settings, engine=slides_engine)
        assert result.status is Status.FAILED
        assert "not found" in result.error
        assert slides_engine.commands == []

    def test_hosted_requires_url(self, slides_engine, video, settings):
        result = convert(video, settings=settings, engine=slides_engine, hosted=True)
        assert result.status is Status.FAILED

    def test_cancelled_download(self, slides_engine, settings):
        cancel = threading.Event()
        cancel.set()
        result = convert("https://example.com/talk.mp4", settings=settings,
                         engine=slides_engine, cancel_event=cancel)
        assert result.status is Status.FAILED
        assert "cancelled" in result.error

    def test_hosted_url_resolved_then_downloaded(self, monkeypatch, slides_engine,
                                                 settings, tmp_path):
        slides_engine.workdir = tmp_path
        downloads = []
        monkeypatch.setattr(
            core, "resolve_hosted_video",
            lambda url, endpoint, **kwargs: "https://cdn.example/files/v.webm")
        monkeypatch.setattr(
            core, "download",
            lambda url, target, **kwargs: downloads.append((url, target)))

        result = convert("https://youtu.be/xyz", settings=settings,
                         engine=slides_engine, hosted=True)
        assert downloads == [("https://cdn.example/files/v.webm", tmp_path / "input.webm")]
        assert slides_engine.commands[0] == ["-hide_banner", "-i", "input.webm"]
        assert result.status is Status.OK

    def test_invalid_config_file_reported(self, monkeypatch, tmp_path, slides_engine, video):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "config.yaml").write_text("sampling: [not, a, mapping\n")
        result = convert(video, engine=slides_engine)
        assert result.status is Status.FAILED
        assert slides_engine.commands == []


class TestStartConversion:

    def test_done_callback_receives_result(self, slides_engine, video, settings):
        results = []
        job = start_conversion(video, results.append,
                               settings=settings, engine=slides_engine)
        job.join(timeout=10)
        assert not job.running
        assert len(results) == 1
        assert isinstance(results[0], ConversionResult)
        assert results[0].status is Status.OK

    def test_policy_error_becomes_failed(self, fake_engine_factory, video, settings):
        settings.sampling.on_unknown_duration = "error"
        results = []
        job = start_conversion(video, results.append, settings=settings,
                               engine=fake_engine_factory())
        job.join(timeout=10)
        assert results[0].status is Status.FAILED

    def test_invalid_config_file_becomes_failed(self, monkeypatch, tmp_path,
                                                slides_engine, video):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "config.yaml").write_text("sampling: {interval_seconds: -1}\n")
        results = []
        job = start_conversion(video, results.append, engine=slides_engine)
        job.join(timeout=10)
        assert len(results) == 1
        assert results[0].status is Status.FAILED
        assert "interval_seconds" in results[0].error
        assert slides_engine.commands == []

    def test_unexpected_error_still_calls_back(self, monkeypatch, video):
        def explode(source, **kwargs):
            raise RuntimeError("worker crashed")
        monkeypatch.setattr(core, "convert", explode)
        results = []
        job = start_conversion(video, results.append)
        job.join(timeout=10)
        assert [r.status for r in results] == [Status.FAILED]
        assert results[0].error == "worker crashed"

import math
import os
import sys
import unittest
from unittest.mock import MagicMock

import numpy as np

# Add the src directory to the Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

from recital_coach.pipeline_coordinator import (
    DEFAULT_ERROR_MESSAGE,
    TIMEOUT_ERROR_MESSAGE,
    PipelineCoordinator,
    PipelineState,
    TranscriberSettings,
    apply_event,
)
from recital_coach.transcription_events import (
    CompleteEvent,
    DoneEvent,
    ErrorEvent,
    InitiateEvent,
    ProgressEvent,
    ReadyEvent,
    TranscriptionTask,
    UpdateEvent,
)
from recital_coach.worker_service import TranscriptionWorker


class FakeWorker(TranscriptionWorker):
    """Records posted requests so tests can emit events by hand."""

    def __init__(self):
        self.posts = []
        self.abort_count = 0

    def post(self, request, emit):
        self.posts.append((request, emit))

    def abort(self):
        self.abort_count += 1

    def emit(self, event, index=-1):
        return self.posts[index][1](event)


class TestPipelineCoordinator(unittest.TestCase):
    def setUp(self):
        self.worker = FakeWorker()
        self.coordinator = PipelineCoordinator(self.worker)

    def test_initial_state(self):
        self.assertEqual(self.coordinator.state, PipelineState())

    def test_submit_without_audio_is_ignored(self):
        self.assertIsNone(self.coordinator.submit(None))
        self.assertIsNone(self.coordinator.submit(np.array([], dtype=np.float32)))
        self.assertEqual(self.worker.posts, [])
        self.assertFalse(self.coordinator.state.is_busy)

    def test_full_request_lifecycle(self):
        token = self.coordinator.submit(np.zeros(1600, dtype=np.float32))
        self.assertEqual(token, 1)
        self.assertTrue(self.coordinator.state.is_busy)

        self.worker.emit(InitiateEvent(resource_id="encoder.onnx", name="tiny.en"))
        state = self.coordinator.state
        self.assertTrue(state.is_model_loading)
        self.assertIn("encoder.onnx", state.pending_resources)

        self.worker.emit(ProgressEvent(resource_id="encoder.onnx", loaded=50, total=100))
        self.assertEqual(self.coordinator.state.pending_resources["encoder.onnx"].progress, 50.0)

        self.worker.emit(DoneEvent(resource_id="encoder.onnx"))
        state = self.coordinator.state
        self.assertEqual(state.pending_resources, {})
        self.assertFalse(state.is_model_loading)

        self.worker.emit(UpdateEvent(text="hel"))
        self.assertTrue(self.coordinator.state.last_result.is_busy)
        self.assertTrue(self.coordinator.state.is_busy)

        self.worker.emit(CompleteEvent(text="hello"))
        state = self.coordinator.state
        self.assertFalse(state.is_busy)
        self.assertEqual(state.last_result.text, "hello")
        self.assertFalse(state.last_result.is_busy)
        self.assertIsNone(state.last_error)

    def test_ready_clears_model_loading(self):
        self.coordinator.submit(np.ones(10, dtype=np.float32))
        self.worker.emit(InitiateEvent(resource_id="a", name="a"))
        self.worker.emit(InitiateEvent(resource_id="b", name="b"))
        self.worker.emit(DoneEvent(resource_id="a"))
        self.assertTrue(self.coordinator.state.is_model_loading)
        self.worker.emit(ReadyEvent())
        self.assertFalse(self.coordinator.state.is_model_loading)

    def test_stale_events_are_dropped(self):
        self.coordinator.submit(np.ones(10, dtype=np.float32))
        second = self.coordinator.submit(np.ones(10, dtype=np.float32))
        self.assertEqual(second, 2)

        applied = self.worker.emit(CompleteEvent(text="old result"), index=0)
        self.assertFalse(applied)
        self.assertTrue(self.coordinator.state.is_busy)
        self.assertIsNone(self.coordinator.state.last_result)

        self.assertTrue(self.worker.emit(CompleteEvent(text="new result"), index=1))
        self.assertEqual(self.coordinator.state.last_result.text, "new result")

    def test_new_submit_resets_previous_result(self):
        self.coordinator.submit(np.ones(10, dtype=np.float32))
        self.worker.emit(ErrorEvent(message="boom"))
        self.assertEqual(self.coordinator.state.last_error, "boom")

        self.coordinator.submit(np.ones(10, dtype=np.float32))
        state = self.coordinator.state
        self.assertTrue(state.is_busy)
        self.assertIsNone(state.last_error)
        self.assertIsNone(state.last_result)

    def test_error_event(self):
        self.coordinator.submit(np.ones(10, dtype=np.float32))
        self.worker.emit(InitiateEvent(resource_id="a", name="a"))
        self.worker.emit(ErrorEvent(message=""))
        state = self.coordinator.state
        self.assertFalse(state.is_busy)
        self.assertFalse(state.is_model_loading)
        self.assertEqual(state.last_error, DEFAULT_ERROR_MESSAGE)

    def test_post_failure_becomes_error(self):
        worker = MagicMock(spec=TranscriptionWorker)
        worker.post.side_effect = RuntimeError("worker crashed")
        coordinator = PipelineCoordinator(worker)

        token = coordinator.submit(np.ones(10, dtype=np.float32))
        self.assertEqual(token, 1)
        self.assertFalse(coordinator.state.is_busy)
        self.assertEqual(coordinator.state.last_error, "worker crashed")

    def test_wait_for_result_timeout_aborts_worker(self):
        self.coordinator.submit(np.ones(10, dtype=np.float32))
        state = self.coordinator.wait_for_result(timeout=0.01)
        self.assertEqual(self.worker.abort_count, 1)
        self.assertFalse(state.is_busy)
        self.assertEqual(state.last_error, TIMEOUT_ERROR_MESSAGE)

    def test_wait_for_result_after_completion(self):
        self.coordinator.submit(np.ones(10, dtype=np.float32))
        self.worker.emit(CompleteEvent(text="done"))
        state = self.coordinator.wait_for_result(timeout=0.01)
        self.assertEqual(state.last_result.text, "done")
        self.assertEqual(self.worker.abort_count, 0)

    def test_stereo_is_downmixed(self):
        self.coordinator.submit(np.ones((2, 4), dtype=np.float32))
        request = self.worker.posts[0][0]
        self.assertEqual(request.audio.shape, (4,))
        np.testing.assert_allclose(request.audio, [math.sqrt(2)] * 4, rtol=1e-6)

    def test_settings_apply_to_request(self):
        coordinator = PipelineCoordinator(
            self.worker,
            settings=TranscriberSettings(model="tiny", multilingual=True, subtask="translate", language="es"),
        )
        coordinator.submit(np.ones(10, dtype=np.float32))
        request = self.worker.posts[0][0]
        self.assertEqual(request.model, "tiny")
        self.assertEqual(request.subtask, TranscriptionTask.TRANSLATE)
        self.assertEqual(request.language, "es")

        self.coordinator.submit(np.ones(10, dtype=np.float32))
        english_request = self.worker.posts[1][0]
        self.assertIsNone(english_request.subtask)
        self.assertIsNone(english_request.language)

    def test_input_change_clears_result(self):
        self.coordinator.submit(np.ones(10, dtype=np.float32))
        self.worker.emit(CompleteEvent(text="hello"))
        self.coordinator.on_input_change()
        self.assertIsNone(self.coordinator.state.last_result)
        self.assertIsNone(self.coordinator.state.last_error)

    def test_subscribers_see_every_change(self):
        seen = []
        unsubscribe = self.coordinator.subscribe(seen.append)
        self.assertEqual(len(seen), 1)

        self.coordinator.submit(np.ones(10, dtype=np.float32))
        self.worker.emit(CompleteEvent(text="hello"))
        self.assertEqual(len(seen), 3)
        self.assertTrue(seen[1].is_busy)
        self.assertFalse(seen[2].is_busy)

        unsubscribe()
        self.coordinator.submit(np.ones(10, dtype=np.float32))
        self.assertEqual(len(seen), 3)

    def test_failing_subscriber_does_not_break_others(self):
        seen = []
        self.coordinator.subscribe(seen.append)
        failing = MagicMock(side_effect=[None, RuntimeError("bad subscriber")])
        self.coordinator.subscribe(failing)

        self.coordinator.submit(np.ones(10, dtype=np.float32))
        self.assertEqual(len(seen), 2)

    def test_late_result_after_timeout_is_dropped(self):
        self.coordinator.submit(np.ones(10, dtype=np.float32))
        self.coordinator.wait_for_result(timeout=0.01)

        applied = self.worker.emit(CompleteEvent(text="late"))

        self.assertFalse(applied)
        state = self.coordinator.state
        self.assertEqual(state.last_error, TIMEOUT_ERROR_MESSAGE)
        self.assertIsNone(state.last_result)

    def test_events_after_terminal_event_are_dropped(self):
        self.coordinator.submit(np.ones(10, dtype=np.float32))
        self.assertTrue(self.worker.emit(CompleteEvent(text="first")))
        self.assertFalse(self.worker.emit(ErrorEvent(message="second")))
        self.assertFalse(self.worker.emit(UpdateEvent(text="third")))

        state = self.coordinator.state
        self.assertEqual(state.last_result.text, "first")
        self.assertIsNone(state.last_error)

    def test_event_without_request_is_dropped(self):
        self.assertFalse(self.coordinator.handle_event(CompleteEvent(text="nobody asked")))
        self.assertEqual(self.coordinator.state, PipelineState())

    def test_subscriber_can_call_back_in(self):
        seen = []

        def clear_on_complete(state):
            seen.append(state)
            if state.last_result is not None and not state.is_busy:
                self.coordinator.on_input_change()

        self.coordinator.subscribe(clear_on_complete)
        self.coordinator.submit(np.ones(10, dtype=np.float32))
        self.worker.emit(CompleteEvent(text="hello"))

        self.assertEqual(seen[-1], self.coordinator.state)
        self.assertIsNone(self.coordinator.state.last_result)

    def test_snapshots_are_read_only(self):
        self.coordinator.submit(np.ones(10, dtype=np.float32))
        self.worker.emit(InitiateEvent(resource_id="a", name="a"))
        state = self.coordinator.state
        with self.assertRaises(TypeError):
            state.pending_resources["b"] = None

        self.worker.emit(CompleteEvent(text="hello"))
        self.assertIsInstance(self.coordinator.state.last_result.chunks, tuple)
        self.assertIn("a", state.pending_resources)


class TestTranscriberSettings(unittest.TestCase):
    def test_unknown_model(self):
        with self.assertRaises(ValueError):
            TranscriberSettings(model="huge-v9")

    def test_unsupported_language(self):
        with self.assertRaises(ValueError):
            TranscriberSettings(model="tiny", multilingual=True, language="klingon")

    def test_english_only_model_disables_multilingual(self):
        settings = TranscriberSettings(model="base.en", multilingual=True, subtask="translate", language="es")
        self.assertFalse(settings.multilingual)
        request = settings.build_request(np.zeros(4, dtype=np.float32))
        self.assertIsNone(request.subtask)
        self.assertIsNone(request.language)

    def test_auto_detect_language(self):
        for language in ("auto", ""):
            settings = TranscriberSettings(model="small", multilingual=True, language=language)
            self.assertEqual(settings.language, "")
            self.assertIsNone(settings.build_request(np.zeros(4, dtype=np.float32)).language)


class TestApplyEvent(unittest.TestCase):
    def test_progress_for_unknown_resource_is_ignored(self):
        state = PipelineState()
        self.assertEqual(apply_event(state, ProgressEvent("missing", 1, 2)), state)

    def test_progress_without_total(self):
        state = apply_event(PipelineState(), InitiateEvent("a", "a"))
        state = apply_event(state, ProgressEvent("a", 10, 0))
        self.assertEqual(state.pending_resources["a"].progress, 0.0)

    def test_unknown_event(self):
        with self.assertRaises(ValueError):
            apply_event(PipelineState(), object())


if __name__ == "__main__":
    unittest.main()

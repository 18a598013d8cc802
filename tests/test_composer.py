#!/usr/bin/env python3

"""
Tests for running both tracks side by side.
"""

# Standard Library
import asyncio
import os
import sys
import tempfile

import pytest

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
	sys.path.insert(0, REPO_ROOT)

from fake_session import FakePool
from fake_session import FakeSession
from weavelib.core.assets import AudioInput
from weavelib.core.assets import ImageInput
from weavelib.core.composer import compose_tracks
from weavelib.core.errors import EncodingError

#============================================

IMAGES = [
	ImageInput(data=b"img", start_time_ms=0, end_time_ms=2000, width=640, height=480),
]
AUDIO = [
	AudioInput(data=b"mp3", start_time_ms=1000, end_time_ms=2500),
]

#============================================

def _compose(pool, reports: list = None):
	def _on_progress(percent: float, message: str) -> None:
		if reports is not None:
			reports.append((percent, message))
	return asyncio.run(compose_tracks(pool, IMAGES, [], AUDIO,
		"full_video.mp4", "full_audio.mp3", 3000, 640, 480,
		on_progress=_on_progress))

#============================================

def test_both_tracks_are_returned() -> None:
	reports = []
	with tempfile.TemporaryDirectory() as video_dir, \
		tempfile.TemporaryDirectory() as audio_dir:
		pool = FakePool(FakeSession(video_dir), FakeSession(audio_dir))
		result = _compose(pool, reports)
		assert result.video.path == os.path.join(video_dir, "full_video.mp4")
		assert result.audio.path == os.path.join(audio_dir, "full_audio.mp3")
		assert result.video.read_bytes() == b"fake:full_video.mp4"
		assert pool.video.outputs()[-1] == "full_video.mp4"
		assert pool.audio.outputs()[-1] == "full_audio.mp3"
	percents = [percent for percent, _ in reports]
	assert percents == sorted(percents)
	assert percents[-1] == pytest.approx(100.0)
	assert any(message.startswith("video: ") for _, message in reports)
	assert any(message.startswith("audio: ") for _, message in reports)

#============================================

def test_video_failure_cancels_audio() -> None:
	with tempfile.TemporaryDirectory() as video_dir, \
		tempfile.TemporaryDirectory() as audio_dir:
		video = FakeSession(video_dir, failures={'slideshow_': 1})
		audio = FakeSession(audio_dir, block=True)
		with pytest.raises(EncodingError) as excinfo:
			_compose(FakePool(video, audio))
		assert excinfo.value.stage == 'video.image.slideshow'
		assert audio.cancelled
		assert audio.log_handler_count() == 0
		assert os.listdir(audio_dir) == []

#============================================

def test_audio_failure_is_reported() -> None:
	with tempfile.TemporaryDirectory() as video_dir, \
		tempfile.TemporaryDirectory() as audio_dir:
		video = FakeSession(video_dir)
		audio = FakeSession(audio_dir, failures={'full_audio': 2})
		with pytest.raises(EncodingError) as excinfo:
			_compose(FakePool(video, audio))
		assert excinfo.value.stage == 'audio.mix'
		assert excinfo.value.exit_code == 2

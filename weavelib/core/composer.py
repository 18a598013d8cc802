#!/usr/bin/env python3

"""
Composition entry point: renders the silent video track and the mixed audio
track of one timeline side by side, reporting one combined progress figure.
"""

import asyncio
from weavelib.core.audio_track import compose_full_audio
from weavelib.core.progress import ProgressTracker
from weavelib.core.progress import combine_progress
from weavelib.core.results import CompositionResult
from weavelib.core.video_track import compose_silent_video

#============================================

TRACK_WEIGHTS = (
	('video', 0.7),
	('audio', 0.3),
)

#============================================

class CombinedProgress():
	def __init__(self, on_progress=None):
		self.tracker = ProgressTracker(on_progress)
		self.percents = {kind: 0.0 for kind, _ in TRACK_WEIGHTS}

	#============================
	def reporter(self, kind: str):
		def _report(percent: float, message: str) -> None:
			self.percents[kind] = percent
			parts = [(weight, self.percents[name]) for name, weight in TRACK_WEIGHTS]
			self.tracker.report(combine_progress(parts), f"{kind}: {message}")
		return _report

#============================================

async def _first_failure(tasks: list) -> None:
	"""
	Wait for all tasks; on the first failure cancel the rest and re-raise it.
	"""
	try:
		done, pending = await asyncio.wait(tasks,
			return_when=asyncio.FIRST_EXCEPTION)
	except asyncio.CancelledError:
		for task in tasks:
			task.cancel()
		await asyncio.gather(*tasks, return_exceptions=True)
		raise
	for task in pending:
		task.cancel()
	if len(pending) > 0:
		await asyncio.gather(*pending, return_exceptions=True)
	for task in tasks:
		if task in done and not task.cancelled() and task.exception() is not None:
			raise task.exception()

#============================================

async def compose_tracks(pool, images: list, videos: list, audio_clips: list,
	video_filename: str, audio_filename: str, total_duration_ms: int,
	width: int, height: int, framerate: float = 25,
	exclude_empty: bool = False, on_progress=None) -> CompositionResult:
	"""
	Render both tracks concurrently on the pool's video and audio sessions.

	Args:
		pool: EnginePool owning the sessions.
		images: ImageInput segments.
		videos: VideoInput segments.
		audio_clips: AudioInput segments.
		video_filename: Silent video output name.
		audio_filename: Mixed audio output name.
		total_duration_ms: Timeline length.
		width: Output width.
		height: Output height.
		framerate: Output framerate.
		exclude_empty: Leave visual gaps out of the video.
		on_progress: Callback receiving (percent, message).

	Returns:
		CompositionResult: Both finished tracks.

	Raises:
		CompositionError: Either track failed; the other one is cancelled.
	"""
	progress = CombinedProgress(on_progress)
	video_task = asyncio.ensure_future(compose_silent_video(pool.video,
		images, videos, video_filename, total_duration_ms, width, height,
		framerate=framerate, exclude_empty=exclude_empty,
		on_progress=progress.reporter('video')))
	audio_task = asyncio.ensure_future(compose_full_audio(pool.audio,
		audio_clips, audio_filename, total_duration_ms,
		on_progress=progress.reporter('audio')))
	await _first_failure([video_task, audio_task])
	return CompositionResult(video=video_task.result(), audio=audio_task.result())

#============================================

async def compose_timeline(pool, timeline, video_filename: str,
	audio_filename: str, exclude_empty: bool = None,
	on_progress=None) -> CompositionResult:
	if exclude_empty is None:
		exclude_empty = timeline.exclude_empty
	return await compose_tracks(pool, timeline.images, timeline.videos,
		timeline.audio_clips, video_filename, audio_filename,
		timeline.duration_ms, timeline.width, timeline.height,
		framerate=timeline.framerate, exclude_empty=exclude_empty,
		on_progress=on_progress)

#!/usr/bin/env python3

import contextlib
from weavelib.core import covering
from weavelib.core import utils
from weavelib.core.errors import CompositionError
from weavelib.core.errors import EncodingError
from weavelib.core.progress import ProgressTracker
from weavelib.core.progress import Stage
from weavelib.core.progress import WeightedProgress
from weavelib.core.progress import capture_progress
from weavelib.core.results import TrackResult
from weavelib.media import probe

#============================================

# concat is stream copy and fast, clip rendering is most of the work
CLIP_STAGE = Stage(0, 70)
CONCAT_STAGE = Stage(70, 100)

PREPARE_MESSAGE = "Preparing videos..."
CONCAT_MESSAGE = "Concatenating videos..."

#============================================

def build_manifest(clip_names: list) -> str:
	"""
	Concat demuxer list, one `file <name>` line per clip in timeline order.
	"""
	lines = [f"file {name}" for name in clip_names]
	return "\n".join(lines) + "\n"

#============================================

class SilentVideoCompositor():
	def __init__(self, session, width: int, height: int, framerate: float = 25,
		exclude_empty: bool = False, on_progress=None):
		self.session = session
		self.width = int(width)
		self.height = int(height)
		self.framerate = framerate
		self.exclude_empty = exclude_empty
		self.tracker = ProgressTracker(on_progress)

	#============================
	async def compose(self, images: list, videos: list, filename: str,
		total_duration_ms: int) -> TrackResult:
		entries = covering.normalize(images, videos, total_duration_ms)
		if self.exclude_empty:
			entries = [entry for entry in entries if entry.kind != 'empty']
		utils.log_message(f"Creating silent video {filename}: "
			f"{len(entries)} clips, {total_duration_ms}ms")
		self.tracker.report(0, PREPARE_MESSAGE)
		weights = [entry.duration_ms for entry in entries]
		entry_progress = WeightedProgress(CLIP_STAGE, weights)
		async with contextlib.AsyncExitStack() as scratch:
			clip_names = []
			for index, entry in enumerate(entries):
				on_raw = self._make_entry_reporter(entry_progress, index)
				clip_name = await self._render_entry(entry, scratch, on_raw)
				clip_names.append(clip_name)
				self.tracker.report(entry_progress.complete(index), PREPARE_MESSAGE)
			if len(clip_names) == 0:
				raise CompositionError("no video clips to concatenate",
					stage='video.concatenate')
			self.tracker.report(CONCAT_STAGE.start_percent, CONCAT_MESSAGE)
			manifest_name = utils.make_scratch_name('fileList', '.txt')
			manifest = build_manifest(clip_names)
			await scratch.enter_async_context(
				self.session.scratch_file(manifest_name, manifest.encode('utf-8'))
			)
			await self._concatenate(manifest_name, filename, total_duration_ms)
		self.tracker.report(100, CONCAT_MESSAGE)
		utils.log_message(f"Silent video created {filename}")
		return TrackResult('video', self.session.path(filename), total_duration_ms)

	#============================
	def _make_entry_reporter(self, entry_progress: WeightedProgress, index: int):
		def _on_raw(raw_percent: float) -> None:
			self.tracker.report(entry_progress.update(index, raw_percent),
				PREPARE_MESSAGE)
		return _on_raw

	#============================
	async def _render_entry(self, entry, scratch, on_raw) -> str:
		"""
		Produce the clip for one covering entry, returning its scratch name.

		The clip is registered on `scratch` so it outlives this call until
		the concatenation is done.
		"""
		if entry.kind == 'empty':
			clip_name = utils.make_scratch_name('empty_video', '.mp4')
			await scratch.enter_async_context(self.session.scratch_file(clip_name))
			await self._render_empty(entry, clip_name, on_raw)
			return clip_name
		if entry.kind == 'image':
			clip_name = utils.make_scratch_name('slideshow', '.mp4')
			await scratch.enter_async_context(self.session.scratch_file(clip_name))
			await self._render_image(entry, clip_name, on_raw)
			return clip_name
		if entry.kind == 'video':
			clip_name = utils.make_scratch_name('video', '.mp4')
			await scratch.enter_async_context(
				self.session.scratch_file(clip_name, entry.data)
			)
			return clip_name
		raise CompositionError(f"unsupported visual entry type {entry.kind}",
			stage='video.prepare')

	#============================
	async def _run(self, args: list, stage: str, message: str,
		total_time_ms: float = None, on_raw=None) -> None:
		if on_raw is None:
			exit_code = await self.session.exec(args)
		else:
			async with capture_progress(self.session, total_time_ms, on_raw):
				exit_code = await self.session.exec(args)
		if exit_code != 0:
			raise EncodingError(message, stage=stage, exit_code=exit_code,
				command=args)

	#============================
	async def _render_empty(self, entry, clip_name: str, on_raw) -> None:
		seconds = utils.millis_to_seconds_text(entry.duration_ms)
		args = [
			'-f', 'lavfi',
			'-i', f"color=c=black:s={self.width}x{self.height}:r={self.framerate}:d={seconds}",
			'-c:v', 'libx264',
			'-pix_fmt', 'yuv420p',
			'-r', f"{self.framerate}",
			'-t', seconds,
			clip_name,
		]
		await self._run(args, 'video.empty', "error while creating empty video",
			entry.duration_ms, on_raw)

	#============================
	async def _render_image(self, entry, clip_name: str, on_raw) -> None:
		suffix = probe.getImageSuffix(entry.data)
		base_name = utils.make_scratch_name('base_image', suffix)
		async with self.session.scratch_file(base_name, entry.data):
			if entry.width != self.width or entry.height != self.height:
				scaled_name = utils.make_scratch_name('scaled_base_image', '.jpg')
				async with self.session.scratch_file(scaled_name):
					await self._scale_image(base_name, scaled_name)
					await self._render_slideshow(scaled_name, entry, clip_name, on_raw)
			else:
				await self._render_slideshow(base_name, entry, clip_name, on_raw)

	#============================
	async def _scale_image(self, base_name: str, scaled_name: str) -> None:
		args = [
			'-i', base_name,
			'-vf', f"scale={self.width}:{self.height}",
			'-c:v', 'mjpeg',
			'-pix_fmt', 'yuvj420p',
			'-frames:v', '1',
			scaled_name,
		]
		await self._run(args, 'video.image.scale', "error while scaling image")

	#============================
	async def _render_slideshow(self, still_name: str, entry, clip_name: str,
		on_raw) -> None:
		seconds = utils.millis_to_seconds_text(entry.duration_ms)
		args = [
			'-loop', '1',
			'-framerate', f"1/{seconds}",
			'-i', still_name,
			'-c:v', 'libx264',
			'-pix_fmt', 'yuv420p',
			'-r', f"{self.framerate}",
			'-t', seconds,
			clip_name,
		]
		await self._run(args, 'video.image.slideshow',
			"error while creating image slideshow video", entry.duration_ms, on_raw)

	#============================
	async def _concatenate(self, manifest_name: str, filename: str,
		total_duration_ms: int) -> None:
		args = [
			'-f', 'concat',
			'-safe', '0',
			'-i', manifest_name,
			'-an',
			'-c', 'copy',
			'-r', f"{self.framerate}",
			'-t', utils.millis_to_seconds_text(total_duration_ms),
			filename,
		]

		def _on_raw(raw_percent: float) -> None:
			self.tracker.report(CONCAT_STAGE.scale(raw_percent), CONCAT_MESSAGE)

		await self._run(args, 'video.concatenate',
			"error while creating base full video", total_duration_ms, _on_raw)

#============================================

async def compose_silent_video(session, images: list, videos: list,
	filename: str, total_duration_ms: int, width: int, height: int,
	framerate: float = 25, exclude_empty: bool = False,
	on_progress=None) -> TrackResult:
	"""
	Render the visual lane into one silent video file.

	Args:
		session: Engine session (multi-thread video session).
		images: ImageInput segments.
		videos: VideoInput segments.
		filename: Output name inside the session scratch directory.
		total_duration_ms: Timeline length.
		width: Output width.
		height: Output height.
		framerate: Output framerate.
		exclude_empty: Leave gaps out instead of rendering black clips.
		on_progress: Callback receiving (percent, message).

	Returns:
		TrackResult: The finished video track.

	Raises:
		EncodingError: Any engine request failed.
	"""
	compositor = SilentVideoCompositor(session, width, height,
		framerate=framerate, exclude_empty=exclude_empty,
		on_progress=on_progress)
	return await compositor.compose(images, videos, filename, total_duration_ms)

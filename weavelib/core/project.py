#!/usr/bin/env python3

import asyncio
import os
import shutil
import tempfile
from weavelib.core import covering
from weavelib.core import utils
from weavelib.core.composer import compose_timeline
from weavelib.core.loader import TimelineLoader
from weavelib.core.progress import make_console_reporter
from weavelib.core.results import CompositionResult
from weavelib.core.results import TrackResult
from weavelib.media.ffmpeg_render import muxTracks
from weavelib.media.ffmpeg_session import EnginePool

#============================================

class WeaveProject():
	def __init__(self, yaml_file: str, output_override: str = None,
		dry_run: bool = False, keep_temp: bool = False, cache_dir: str = None):
		loader = TimelineLoader(yaml_file, output_override=output_override)
		self._timeline = loader.load()
		self.yaml_file = yaml_file
		self.output_override = output_override
		self.dry_run = dry_run
		self.keep_temp = keep_temp
		self.cache_dir = cache_dir
		self.cache_dir_created = False
		self._sync_public_fields()

	#============================
	def _sync_public_fields(self) -> None:
		self.timeline = self._timeline
		self.output = self._timeline.output
		self.engine = self._timeline.engine
		self.duration_ms = self._timeline.duration_ms

	#============================
	def covering(self) -> list:
		return covering.normalize(self._timeline.images, self._timeline.videos,
			self._timeline.duration_ms)

	#============================
	def plan(self) -> dict:
		audio = []
		for clip in self._timeline.audio_clips:
			info = clip.describe()
			info['has_data'] = clip.data is not None
			audio.append(info)
		return {
			'duration_ms': self._timeline.duration_ms,
			'resolution': [self._timeline.width, self._timeline.height],
			'fps': str(self._timeline.framerate),
			'video': covering.covering_plan(self.covering()),
			'audio': audio,
			'output': self.output,
		}

	#============================
	def validate(self) -> None:
		covering.validate_covering(self.covering(), self._timeline.duration_ms)

	#============================
	def estimate_command_total(self) -> int:
		total = 0
		for entry in self.covering():
			if entry.kind == 'empty' and not self._timeline.exclude_empty:
				total += 1
			elif entry.kind == 'image':
				total += 1
				if (entry.width != self._timeline.width
					or entry.height != self._timeline.height):
					total += 1
		# concatenation and silent base track
		total += 2
		if any(clip.data is not None for clip in self._timeline.audio_clips):
			total += 1
		if self.output.get('file') is not None:
			total += 1
		return total

	#============================
	def run(self, on_progress=None):
		self.validate()
		if self.dry_run:
			utils.log_message("dry run: validation complete")
			return None
		cache_dir = self._prepare_cache_dir()
		try:
			result = asyncio.run(self._render(cache_dir, on_progress))
		finally:
			if not self.keep_temp and self.cache_dir_created:
				shutil.rmtree(cache_dir, ignore_errors=True)
		return result

	#============================
	def _prepare_cache_dir(self) -> str:
		if self.cache_dir is None:
			self.cache_dir = tempfile.mkdtemp(prefix="weave-run-")
			self.cache_dir_created = True
		elif not os.path.exists(self.cache_dir):
			os.makedirs(self.cache_dir)
		return self.cache_dir

	#============================
	async def _render(self, cache_dir: str, on_progress) -> CompositionResult:
		if on_progress is None and not utils.is_quiet_mode():
			on_progress = make_console_reporter()
		engine = self.engine
		pool = EnginePool(cache_dir=cache_dir, ffmpeg_bin=engine['ffmpeg'],
			video_threads=engine['video_threads'],
			audio_threads=engine['audio_threads'],
			loglevel=engine['loglevel'], echo_log=engine['echo_log'],
			keep_temp=self.keep_temp)
		with pool:
			video_name = utils.make_scratch_name('full_video',
				os.path.splitext(self.output['video'])[1] or '.mp4')
			audio_name = utils.make_scratch_name('full_audio',
				os.path.splitext(self.output['audio'])[1] or '.mp3')
			result = await compose_timeline(pool, self._timeline, video_name,
				audio_name, on_progress=on_progress)
			video_file = os.path.abspath(result.video.save(self.output['video']))
			audio_file = os.path.abspath(result.audio.save(self.output['audio']))
			if self.output.get('file') is not None:
				await muxTracks(pool.video, video_file, audio_file,
					os.path.abspath(self.output['file']),
					audio_codec=self.output['audio_codec'])
		utils.log_message(f"video: {video_file}")
		utils.log_message(f"audio: {audio_file}")
		return CompositionResult(
			video=TrackResult('video', video_file, result.video.duration_ms),
			audio=TrackResult('audio', audio_file, result.audio.duration_ms),
		)

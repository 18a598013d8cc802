#!/usr/bin/env python3

import contextlib
import os
from weavelib.core import utils
from weavelib.core.errors import EncodingError
from weavelib.core.progress import ProgressTracker
from weavelib.core.progress import Stage
from weavelib.core.progress import capture_progress
from weavelib.core.results import TrackResult

#============================================

BASE_STAGE = Stage(0, 25)
PREPARE_STAGE = Stage(25, 50)
MIX_STAGE = Stage(50, 100)

BASE_MESSAGE = "Creating base audio..."
MIX_MESSAGE = "Mixing audios..."
DONE_MESSAGE = "Prepared audios..."

#============================================

def clip_duration_secs(clip) -> float:
	return (clip.end_time_ms - clip.start_time_ms) / 1000.0

#============================================

def build_clip_filter(input_index: int, label: str, clip) -> str:
	"""
	Trim a clip to its timeline length and delay it to its start offset.

	Args:
		input_index: ffmpeg input number of the clip.
		label: Output pad name.
		clip: AudioInput.

	Returns:
		str: One filter_complex fragment.
	"""
	duration = f"{clip_duration_secs(clip):g}"
	delay = int(clip.start_time_ms)
	return (f"[{input_index}:a]atrim=0:{duration},"
		f"adelay=delays={delay}:all=1[{label}]")

#============================================

def build_mix_filter(labels: list) -> str:
	inputs = "[0:a]" + "".join(f"[{label}]" for label in labels)
	return f"{inputs}amix=inputs={len(labels) + 1}:duration=longest[a]"

#============================================

class FullAudioCompositor():
	def __init__(self, session, on_progress=None):
		self.session = session
		self.tracker = ProgressTracker(on_progress)

	#============================
	async def compose(self, audio_clips: list, filename: str,
		total_duration_ms: int) -> TrackResult:
		clips = [clip for clip in audio_clips if clip.data is not None]
		utils.log_message(f"Creating full audio {filename}: {len(clips)} clips")
		result = TrackResult('audio', self.session.path(filename), total_duration_ms)
		if len(clips) == 0:
			# base track is the final one
			await self._create_base(filename, total_duration_ms)
			self.tracker.report(100, DONE_MESSAGE)
			return result
		base_name = utils.make_scratch_name('base', os.path.splitext(filename)[1])
		async with contextlib.AsyncExitStack() as scratch:
			await scratch.enter_async_context(self.session.scratch_file(base_name))
			await self._create_base(base_name, total_duration_ms)
			input_args = ['-i', base_name]
			filter_parts = []
			labels = []
			step = 100.0 / len(clips)
			for index, clip in enumerate(clips):
				self.tracker.report(PREPARE_STAGE.scale(step * index), BASE_MESSAGE)
				clip_name = utils.make_scratch_name('audio', '.mp3')
				await scratch.enter_async_context(
					self.session.scratch_file(clip_name, clip.data)
				)
				input_args += ['-i', clip_name]
				label = f"delayed{index}"
				filter_parts.append(build_clip_filter(index + 1, label, clip))
				labels.append(label)
			self.tracker.report(PREPARE_STAGE.target_percent, BASE_MESSAGE)
			filter_parts.append(build_mix_filter(labels))
			await self._mix(input_args, "; ".join(filter_parts), filename,
				total_duration_ms)
		self.tracker.report(100, DONE_MESSAGE)
		return result

	#============================
	async def _create_base(self, filename: str, total_duration_ms: int) -> None:
		args = [
			'-f', 'lavfi',
			'-i', 'anullsrc',
			'-t', utils.millis_to_seconds_text(total_duration_ms),
			filename,
		]

		def _on_raw(raw_percent: float) -> None:
			self.tracker.report(BASE_STAGE.scale(raw_percent), BASE_MESSAGE)

		async with capture_progress(self.session, total_duration_ms, _on_raw):
			exit_code = await self.session.exec(args)
		if exit_code != 0:
			raise EncodingError("error while creating base audio",
				stage='audio.base', exit_code=exit_code, command=args)

	#============================
	async def _mix(self, input_args: list, filter_complex: str, filename: str,
		total_duration_ms: int) -> None:
		args = list(input_args) + [
			'-filter_complex', filter_complex,
			'-map', '[a]',
			'-t', utils.millis_to_seconds_text(total_duration_ms),
			filename,
		]

		def _on_raw(raw_percent: float) -> None:
			self.tracker.report(MIX_STAGE.scale(raw_percent), MIX_MESSAGE)

		async with capture_progress(self.session, total_duration_ms, _on_raw):
			exit_code = await self.session.exec(args)
		if exit_code != 0:
			raise EncodingError("error while creating full audio",
				stage='audio.mix', exit_code=exit_code, command=args)

#============================================

async def compose_full_audio(session, audio_clips: list, filename: str,
	total_duration_ms: int, on_progress=None) -> TrackResult:
	"""
	Mix every audio clip at its timeline offset over a silent base track.

	Raises:
		EncodingError: The base track or the mix request failed.
	"""
	compositor = FullAudioCompositor(session, on_progress=on_progress)
	return await compositor.compose(audio_clips, filename, total_duration_ms)

#!/usr/bin/env python3

import os
import yaml
from weavelib.core import utils
from weavelib.core.assets import AudioInput
from weavelib.core.assets import ImageInput
from weavelib.core.assets import VideoInput
from weavelib.media import probe

#============================================

# timeline categories accepted as segment keys
SEGMENT_KINDS = {
	'video': 'video',
	'image': 'image',
	'storyboard': 'image',
	'audio': 'audio',
	'music': 'audio',
	'sound': 'audio',
	'dialogue': 'audio',
}

#============================================

class TimelineData():
	def __init__(self):
		self.yaml_file = None
		self.data = {}
		self.width = None
		self.height = None
		self.framerate = None
		self.duration_ms = 0
		self.assets = {}
		self.images = []
		self.videos = []
		self.audio_clips = []
		self.output = {}
		self.engine = {}
		self.exclude_empty = False

#============================================

class TimelineLoader():
	def __init__(self, yaml_file: str, output_override: str = None):
		self.yaml_file = yaml_file
		self.output_override = output_override
		self._asset_cache = {}

	#============================
	def load(self) -> TimelineData:
		timeline = TimelineData()
		timeline.yaml_file = self.yaml_file
		timeline.data = self._load_yaml()
		self._validate_required_keys(timeline.data)
		profile = self._parse_profile(timeline.data.get('profile'))
		timeline.width = profile['width']
		timeline.height = profile['height']
		timeline.framerate = profile['fps']
		timeline.engine = self._parse_engine(timeline.data.get('engine', {}))
		timeline.assets = self._parse_assets(timeline.data.get('assets', {}))
		segments = timeline.data['timeline'].get('segments', [])
		self._parse_segments(timeline, segments)
		timeline.duration_ms = self._parse_duration(timeline)
		timeline.output = self._parse_output(timeline.data.get('output', {}))
		timeline.exclude_empty = timeline.output['exclude_empty']
		return timeline

	#============================
	def _load_yaml(self) -> dict:
		file_size = os.path.getsize(self.yaml_file)
		if file_size > 10 ** 7:
			raise RuntimeError("yaml file is larger than 10MB")
		with open(self.yaml_file, 'r') as data_file:
			data = yaml.safe_load(data_file)
		if not isinstance(data, dict):
			raise RuntimeError("project yaml must be a mapping at the top level")
		return data

	#============================
	def _validate_required_keys(self, data: dict) -> None:
		if data.get('weave') != 1:
			raise RuntimeError("weave must be set to 1")
		required_keys = ('profile', 'timeline')
		for key in required_keys:
			if key not in data:
				raise RuntimeError(f"missing required key: {key}")
		if not isinstance(data['timeline'], dict):
			raise RuntimeError("timeline must be a mapping")

	#============================
	def _parse_profile(self, profile: dict) -> dict:
		if not isinstance(profile, dict):
			raise RuntimeError("profile must be a mapping")
		resolution = profile.get('resolution')
		if not resolution or len(resolution) != 2:
			raise RuntimeError("profile.resolution must be [width, height]")
		width = int(resolution[0])
		height = int(resolution[1])
		if width <= 0 or height <= 0:
			raise RuntimeError("profile.resolution values must be positive")
		fps = utils.parse_fps(profile.get('fps', 25))
		return {
			'width': width,
			'height': height,
			'fps': fps,
		}

	#============================
	def _parse_engine(self, engine: dict) -> dict:
		if engine is None:
			engine = {}
		if not isinstance(engine, dict):
			raise RuntimeError("engine must be a mapping")
		return {
			'ffmpeg': str(engine.get('ffmpeg', 'ffmpeg')),
			'ffprobe': str(engine.get('ffprobe', 'ffprobe')),
			'video_threads': int(engine.get('video_threads', 0)),
			'audio_threads': int(engine.get('audio_threads', 1)),
			'loglevel': str(engine.get('loglevel', 'verbose')),
			'echo_log': bool(engine.get('echo_log', False)),
		}

	#============================
	def _parse_assets(self, assets: dict) -> dict:
		if assets is None:
			assets = {}
		asset_groups = {
			'video': assets.get('video', {}) or {},
			'image': assets.get('image', {}) or {},
			'audio': assets.get('audio', {}) or {},
		}
		for group_name, group in asset_groups.items():
			if not isinstance(group, dict):
				raise RuntimeError(f"assets.{group_name} must be a mapping")
			for asset_id, asset in group.items():
				if not isinstance(asset, dict) or asset.get('file') is None:
					raise RuntimeError(f"asset {asset_id} missing file")
		return asset_groups

	#============================
	def _parse_segments(self, timeline: TimelineData, segments: list) -> None:
		if not isinstance(segments, list):
			raise RuntimeError("timeline.segments must be a list")
		for segment in segments:
			if not isinstance(segment, dict) or len(segment) != 1:
				raise RuntimeError("timeline.segments entries must have one key")
			entry_type = list(segment.keys())[0]
			entry = segment[entry_type]
			kind = SEGMENT_KINDS.get(entry_type)
			if kind is None:
				raise RuntimeError(f"unsupported segment type {entry_type}")
			if not isinstance(entry, dict):
				raise RuntimeError(f"{entry_type} segment must be a mapping")
			if entry.get('enabled', True) is False:
				continue
			(start_ms, end_ms) = self._parse_range(entry_type, entry)
			if kind == 'video':
				timeline.videos.append(
					self._build_video(timeline, entry, start_ms, end_ms))
			elif kind == 'image':
				timeline.images.append(
					self._build_image(timeline, entry, start_ms, end_ms))
			else:
				timeline.audio_clips.append(
					self._build_audio(timeline, entry, start_ms, end_ms))

	#============================
	def _parse_range(self, entry_type: str, entry: dict) -> tuple:
		if entry.get('start') is None:
			raise RuntimeError(f"{entry_type} segment requires start")
		start_ms = utils.parse_time_ms(entry.get('start'))
		if entry.get('end') is not None:
			end_ms = utils.parse_time_ms(entry.get('end'))
		elif entry.get('duration') is not None:
			end_ms = start_ms + utils.parse_time_ms(entry.get('duration'))
		else:
			raise RuntimeError(f"{entry_type} segment requires end or duration")
		if start_ms < 0:
			raise RuntimeError(f"{entry_type} segment start must not be negative")
		return (start_ms, end_ms)

	#============================
	def _lookup_asset(self, timeline: TimelineData, group: str,
		entry: dict) -> dict:
		asset_id = entry.get('asset')
		if asset_id is None:
			raise RuntimeError(f"{group} segment must include asset")
		asset = timeline.assets[group].get(asset_id)
		if asset is None:
			raise RuntimeError(f"asset {asset_id} not found in assets.{group}")
		return asset

	#============================
	def _read_asset(self, asset: dict) -> bytes:
		asset_file = asset['file']
		if asset_file not in self._asset_cache:
			utils.ensure_file_exists(asset_file)
			with open(asset_file, 'rb') as handle:
				self._asset_cache[asset_file] = handle.read()
		return self._asset_cache[asset_file]

	#============================
	def _build_image(self, timeline: TimelineData, entry: dict,
		start_ms: int, end_ms: int) -> ImageInput:
		asset = self._lookup_asset(timeline, 'image', entry)
		data = self._read_asset(asset)
		width = asset.get('width')
		height = asset.get('height')
		if width is None or height is None:
			info = probe.getImageInfo(data)
			width = info['width']
			height = info['height']
		return ImageInput(data=data, start_time_ms=start_ms, end_time_ms=end_ms,
			width=int(width), height=int(height))

	#============================
	def _build_video(self, timeline: TimelineData, entry: dict,
		start_ms: int, end_ms: int) -> VideoInput:
		asset = self._lookup_asset(timeline, 'video', entry)
		data = self._read_asset(asset)
		width = asset.get('width')
		height = asset.get('height')
		fps = asset.get('fps')
		if width is None or height is None or fps is None:
			info = probe.getVideoInfo(asset['file'], timeline.engine['ffprobe'])
			width = width if width is not None else info['width']
			height = height if height is not None else info['height']
			fps = fps if fps is not None else info['fps']
		return VideoInput(data=data, start_time_ms=start_ms, end_time_ms=end_ms,
			width=int(width), height=int(height),
			framerate=probe.parseFrameRate(fps))

	#============================
	def _build_audio(self, timeline: TimelineData, entry: dict,
		start_ms: int, end_ms: int) -> AudioInput:
		data = None
		if entry.get('asset') is not None:
			asset = self._lookup_asset(timeline, 'audio', entry)
			data = self._read_asset(asset)
		return AudioInput(data=data, start_time_ms=start_ms, end_time_ms=end_ms)

	#============================
	def _parse_duration(self, timeline: TimelineData) -> int:
		raw_duration = timeline.data['timeline'].get('duration')
		if raw_duration is not None:
			duration_ms = utils.parse_time_ms(raw_duration)
		else:
			ends = [item.end_time_ms for item in
				timeline.images + timeline.videos + timeline.audio_clips]
			duration_ms = max(ends) if len(ends) > 0 else 0
		if duration_ms <= 0:
			raise RuntimeError("timeline duration must be positive")
		return duration_ms

	#============================
	def _parse_output(self, output: dict) -> dict:
		if output is None:
			output = {}
		if not isinstance(output, dict):
			raise RuntimeError("output must be a mapping")
		output_file = output.get('file')
		if self.output_override is not None:
			output_file = self.output_override
		return {
			'video': str(output.get('video', 'video.mp4')),
			'audio': str(output.get('audio', 'audio.mp3')),
			'file': output_file,
			'audio_codec': str(output.get('audio_codec', 'aac')),
			'exclude_empty': bool(output.get('exclude_empty', False)),
		}

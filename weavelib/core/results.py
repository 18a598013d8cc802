#!/usr/bin/env python3

import dataclasses
import os
import shutil

#============================================

@dataclasses.dataclass(frozen=True)
class TrackResult():
	"""
	A finished track; only created once its engine run fully succeeded.
	"""
	kind: str
	path: str
	duration_ms: int

	#============================
	def read_bytes(self) -> bytes:
		with open(self.path, 'rb') as handle:
			return handle.read()

	#============================
	def save(self, destination: str) -> str:
		dest_dir = os.path.dirname(os.path.abspath(destination))
		if not os.path.exists(dest_dir):
			os.makedirs(dest_dir)
		shutil.copy(self.path, destination)
		return destination

#============================================

@dataclasses.dataclass(frozen=True)
class CompositionResult():
	video: TrackResult
	audio: TrackResult

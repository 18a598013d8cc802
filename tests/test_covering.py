#!/usr/bin/env python3

import os
import sys
import unittest

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
	sys.path.insert(0, REPO_ROOT)

from weavelib.core import covering
from weavelib.core.assets import AudioInput
from weavelib.core.assets import ImageInput
from weavelib.core.assets import VideoInput
from weavelib.core.errors import MalformedInputError

#============================================

def _image(start_ms: int, end_ms: int) -> ImageInput:
	return ImageInput(data=b"img", start_time_ms=start_ms, end_time_ms=end_ms,
		width=640, height=480)

#============================================

def _video(start_ms: int, end_ms: int) -> VideoInput:
	return VideoInput(data=b"vid", start_time_ms=start_ms, end_time_ms=end_ms,
		width=640, height=480, framerate=25.0)

#============================================

def _spans(entries: list) -> list:
	return [(entry.kind, entry.start_time_ms, entry.end_time_ms) for entry in entries]

#============================================

class CoveringTest(unittest.TestCase):
	#============================================
	def test_gaps_become_empty_entries(self) -> None:
		"""Uncovered time is filled before, between and after segments."""
		result = covering.normalize([_image(1000, 2000)], [_video(2500, 3000)], 4000)
		self.assertEqual(_spans(result), [
			('empty', 0, 1000),
			('image', 1000, 2000),
			('empty', 2000, 2500),
			('video', 2500, 3000),
			('empty', 3000, 4000),
		])
		covering.validate_covering(result, 4000)

	#============================================
	def test_video_cuts_the_image_before_it(self) -> None:
		result = covering.normalize([_image(0, 3000)], [_video(1000, 2000)], 3000)
		self.assertEqual(_spans(result), [
			('image', 0, 1000),
			('video', 1000, 2000),
			('empty', 2000, 3000),
		])

	#============================================
	def test_image_overlapping_next_video(self) -> None:
		result = covering.normalize([_image(0, 2000)], [_video(1500, 4000)], 4000)
		self.assertEqual(_spans(result), [
			('image', 0, 1500),
			('video', 1500, 4000),
		])

	#============================================
	def test_no_segments_is_one_empty_entry(self) -> None:
		result = covering.normalize([], [], 2500)
		self.assertEqual(_spans(result), [('empty', 0, 2500)])

	#============================================
	def test_segment_inside_a_video_starts_after_it(self) -> None:
		result = covering.normalize([_image(1000, 3000)], [_video(0, 2000)], 3000)
		self.assertEqual(_spans(result), [
			('video', 0, 2000),
			('image', 2000, 3000),
		])

	#============================================
	def test_overlapping_video_starts_after_earlier_video(self) -> None:
		result = covering.normalize([], [_video(0, 2000), _video(1500, 3000)], 4000)
		self.assertEqual(_spans(result), [
			('video', 0, 2000),
			('video', 2000, 3000),
			('empty', 3000, 4000),
		])
		# a video fully inside the earlier one has nothing left
		result = covering.normalize([], [_video(0, 2000), _video(500, 1500)], 2000)
		self.assertEqual(_spans(result), [('video', 0, 2000)])

	#============================================
	def test_hidden_image_is_dropped(self) -> None:
		result = covering.normalize([_image(1000, 2000)], [_video(1000, 3000)], 3000)
		self.assertEqual(_spans(result), [
			('empty', 0, 1000),
			('video', 1000, 3000),
		])

	#============================================
	def test_image_runs_until_next_image(self) -> None:
		result = covering.normalize([_image(2000, 4000), _image(0, 3000)], [], 4000)
		self.assertEqual(_spans(result), [
			('image', 0, 2000),
			('image', 2000, 4000),
		])

	#============================================
	def test_entries_are_clamped_to_the_timeline(self) -> None:
		result = covering.normalize([_image(2000, 5000)], [_video(6000, 7000)], 3000)
		self.assertEqual(_spans(result), [
			('empty', 0, 2000),
			('image', 2000, 3000),
		])

	#============================================
	def test_empty_timeline_has_no_entries(self) -> None:
		self.assertEqual(covering.normalize([_image(0, 1000)], [], 0), [])
		covering.validate_covering([], 0)

	#============================================
	def test_inputs_are_not_mutated(self) -> None:
		image = _image(0, 3000)
		covering.normalize([image], [_video(1000, 2000)], 3000)
		self.assertEqual((image.start_time_ms, image.end_time_ms), (0, 3000))

	#============================================
	def test_degenerate_segment_is_rejected(self) -> None:
		with self.assertRaises(MalformedInputError):
			_image(1000, 1000)
		with self.assertRaises(MalformedInputError):
			AudioInput(data=None, start_time_ms=500, end_time_ms=100)

	#============================================
	def test_validate_covering_reports_gaps(self) -> None:
		entries = [_image(0, 1000), _image(1500, 2000)]
		with self.assertRaises(MalformedInputError):
			covering.validate_covering(entries, 2000)
		with self.assertRaises(MalformedInputError):
			covering.validate_covering([_image(0, 1000)], 2000)

	#============================================
	def test_covering_plan_describes_entries(self) -> None:
		result = covering.normalize([_image(0, 1000)], [], 1500)
		plan = covering.covering_plan(result)
		self.assertEqual(plan[0]['kind'], 'image')
		self.assertEqual(plan[0]['size'], [640, 480])
		self.assertEqual(plan[1], {'kind': 'empty', 'start_ms': 1000, 'end_ms': 1500})

#============================================

def main() -> None:
	"""Run the unit tests."""
	unittest.main()

#============================================

if __name__ == '__main__':
	main()

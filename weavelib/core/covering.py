#!/usr/bin/env python3

from weavelib.core.assets import EmptyInput
from weavelib.core.errors import MalformedInputError

#============================================

def sort_visual_entries(images: list, videos: list) -> list:
	"""
	Merge images and videos ordered by start time.

	sorted() is stable, so entries starting together keep images first.
	"""
	merged = list(images) + list(videos)
	return sorted(merged, key=lambda item: item.start_time_ms)

#============================================

def resolve_overlaps(entries: list, total_duration_ms: int) -> list:
	"""
	Make sorted entries non-overlapping and clamp them to the timeline.

	An image is cut short by whatever starts before it ends, so a video
	always wins over the slideshow image before it. Videos are never cut;
	an entry starting inside a video begins at the video's end instead.
	Entries left without width are dropped.

	A video passes through at its native length, so when a later video is
	moved to an earlier video's end the rendered clips after it play later
	than declared and the final concatenation cuts the tail at the timeline
	length.

	Args:
		entries: Entries sorted by start time.
		total_duration_ms: Timeline length.

	Returns:
		list: Derived, non-overlapping entries in timeline order.
	"""
	resolved = []
	for entry in entries:
		start = max(0, entry.start_time_ms)
		end = min(total_duration_ms, entry.end_time_ms)
		while len(resolved) > 0 and start < resolved[-1].end_time_ms:
			previous = resolved[-1]
			if previous.kind == 'video':
				start = previous.end_time_ms
				break
			if start <= previous.start_time_ms:
				# image fully hidden by its successor
				resolved.pop()
				continue
			resolved[-1] = previous.with_range(previous.start_time_ms, start)
			break
		if end <= start:
			continue
		if start != entry.start_time_ms or end != entry.end_time_ms:
			entry = entry.with_range(start, end)
		resolved.append(entry)
	return resolved

#============================================

def fill_gaps(entries: list, total_duration_ms: int) -> list:
	"""
	Insert empty entries so the result covers [0, total_duration_ms).
	"""
	covering = []
	covered_until = 0
	for entry in entries:
		if entry.start_time_ms > covered_until:
			covering.append(EmptyInput(covered_until, entry.start_time_ms))
		covering.append(entry)
		covered_until = entry.end_time_ms
	if covered_until < total_duration_ms:
		covering.append(EmptyInput(covered_until, total_duration_ms))
	return covering

#============================================

def normalize(images: list, videos: list, total_duration_ms: int) -> list:
	"""
	Build the ordered, gapless covering of the visual lane.

	Args:
		images: ImageInput segments, any order.
		videos: VideoInput segments, any order.
		total_duration_ms: Timeline length.

	Returns:
		list: Covering entries, empty fillers included.
	"""
	total_duration_ms = int(total_duration_ms)
	if total_duration_ms <= 0:
		return []
	entries = sort_visual_entries(images, videos)
	entries = resolve_overlaps(entries, total_duration_ms)
	return fill_gaps(entries, total_duration_ms)

#============================================

def validate_covering(covering: list, total_duration_ms: int) -> None:
	if total_duration_ms <= 0:
		if len(covering) != 0:
			raise MalformedInputError("covering of an empty timeline must be empty")
		return
	if len(covering) == 0:
		raise MalformedInputError("covering is empty")
	if covering[0].start_time_ms != 0:
		raise MalformedInputError("covering must start at 0")
	if covering[-1].end_time_ms != total_duration_ms:
		raise MalformedInputError(
			f"covering ends at {covering[-1].end_time_ms}ms, "
			f"expected {total_duration_ms}ms"
		)
	for current, following in zip(covering, covering[1:]):
		if current.end_time_ms != following.start_time_ms:
			raise MalformedInputError(
				f"covering is not contiguous at {current.end_time_ms}ms"
			)

#============================================

def covering_plan(covering: list) -> list:
	return [entry.describe() for entry in covering]

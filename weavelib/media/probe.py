#!/usr/bin/env python3

#python wrappers for ffprobe and Pillow metadata

import io
import json
import shlex
import subprocess
from fractions import Fraction
import PIL.Image

#============================================

IMAGE_SUFFIXES = {
	'JPEG': '.jpg',
	'PNG': '.png',
	'WEBP': '.webp',
	'GIF': '.gif',
	'BMP': '.bmp',
	'TIFF': '.tiff',
}

#===============================
def getImageInfo(data: bytes) -> dict:
	with PIL.Image.open(io.BytesIO(data)) as image:
		width, height = image.size
		image_format = image.format
	return {
		'width': width,
		'height': height,
		'format': image_format,
	}

#===============================
def getImageSuffix(data: bytes) -> str:
	"""
	File suffix matching the encoded image, ffmpeg picks its decoder from it.
	"""
	try:
		info = getImageInfo(data)
	except PIL.UnidentifiedImageError:
		return '.jpg'
	return IMAGE_SUFFIXES.get(info['format'], '.jpg')

#===============================
def parseFrameRate(value) -> float:
	if value is None or value in ("0/0", ""):
		raise RuntimeError("invalid frame rate from ffprobe")
	rate = Fraction(str(value))
	if rate <= 0:
		raise RuntimeError("invalid frame rate from ffprobe")
	return float(rate)

#===============================
def getVideoInfo(mediafile: str, ffprobe_bin: str = 'ffprobe') -> dict:
	cmd = [
		ffprobe_bin, "-v", "error",
		"-select_streams", "v:0",
		"-show_entries", "stream=width,height,r_frame_rate,avg_frame_rate",
		"-show_entries", "format=duration",
		"-of", "json",
		mediafile,
	]
	proc = subprocess.run(cmd, capture_output=True, text=True)
	if proc.returncode != 0:
		raise RuntimeError(f"command failed: {shlex.join(cmd)}\n{proc.stderr.strip()}")
	data = json.loads(proc.stdout)
	streams = data.get('streams', [])
	if len(streams) == 0:
		raise RuntimeError(f"no video stream found in {mediafile}")
	stream = streams[0]
	width = int(stream.get('width', 0))
	height = int(stream.get('height', 0))
	if width <= 0 or height <= 0:
		raise RuntimeError("invalid video resolution from ffprobe")
	fps_value = stream.get('r_frame_rate')
	if fps_value is None or fps_value == "0/0":
		fps_value = stream.get('avg_frame_rate')
	duration = data.get('format', {}).get('duration')
	return {
		'width': width,
		'height': height,
		'fps': parseFrameRate(fps_value),
		'duration': float(duration) if duration is not None else None,
	}

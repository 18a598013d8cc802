#!/usr/bin/env python3

"""
Integration tests for the composition pipeline.
"""

# Standard Library
import json
import os
import shutil
import subprocess
import sys
import tempfile
import unittest

import PIL.Image

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
	sys.path.insert(0, REPO_ROOT)

from weavelib.core import utils
from weavelib.core.project import WeaveProject

#============================================

REQUIRED_TOOLS = ("ffmpeg", "ffprobe")
MISSING_TOOLS = [tool for tool in REQUIRED_TOOLS if shutil.which(tool) is None]
HAVE_TOOLS = len(MISSING_TOOLS) == 0
SKIP_TOOLS_REASON = f"missing tools: {', '.join(MISSING_TOOLS)}"

#============================================

def _run(cmd: str) -> None:
	subprocess.run(cmd, shell=True, check=True,
		stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)

#============================================

def _probe(path: str) -> dict:
	cmd = (
		"ffprobe -v error -show_entries stream=codec_type "
		f"-show_entries format=duration -of json \"{path}\""
	)
	payload = subprocess.check_output(cmd, shell=True).decode("utf-8")
	data = json.loads(payload)
	duration = data.get("format", {}).get("duration")
	return {
		'types': {stream.get("codec_type") for stream in data.get("streams", [])},
		'duration': float(duration) if duration is not None else 0.0,
	}

#============================================

def _write_yaml(path: str, temp_dir: str) -> None:
	lines = []
	lines.append("weave: 1")
	lines.append("")
	lines.append("profile:")
	lines.append("  fps: 25")
	lines.append("  resolution: [320, 240]")
	lines.append("")
	lines.append("assets:")
	lines.append("  image:")
	lines.append(f"    card: {{file: \"{os.path.join(temp_dir, 'card.png')}\"}}")
	lines.append("  video:")
	lines.append(f"    clip: {{file: \"{os.path.join(temp_dir, 'clip.mp4')}\"}}")
	lines.append("  audio:")
	lines.append(f"    tone: {{file: \"{os.path.join(temp_dir, 'tone.mp3')}\"}}")
	lines.append("")
	lines.append("timeline:")
	lines.append("  duration: 4")
	lines.append("  segments:")
	lines.append("    - image: {asset: card, start: 0, end: 1.5}")
	lines.append("    - video: {asset: clip, start: 1.5, end: 3.5}")
	lines.append("    - audio: {asset: tone, start: 0.5, duration: 1}")
	lines.append("")
	lines.append("output:")
	lines.append(f"  video: \"{os.path.join(temp_dir, 'video.mp4')}\"")
	lines.append(f"  audio: \"{os.path.join(temp_dir, 'audio.mp3')}\"")
	lines.append(f"  file: \"{os.path.join(temp_dir, 'final.mp4')}\"")
	with open(path, "w") as handle:
		handle.write("\n".join(lines))
		handle.write("\n")

#============================================

@unittest.skipUnless(HAVE_TOOLS, SKIP_TOOLS_REASON)
class RenderIntegrationTest(unittest.TestCase):
	#============================================
	def test_render_image_video_and_audio(self) -> None:
		with tempfile.TemporaryDirectory() as temp_dir:
			PIL.Image.new("RGB", (640, 360), color=(12, 18, 24)).save(
				os.path.join(temp_dir, "card.png"))
			_run(
				"ffmpeg -y -f lavfi -i testsrc=size=320x240:rate=25 -t 2 "
				"-c:v libx264 -preset ultrafast -pix_fmt yuv420p "
				f"\"{os.path.join(temp_dir, 'clip.mp4')}\""
			)
			_run(
				"ffmpeg -y -f lavfi -i sine=frequency=1000:sample_rate=44100 -t 1 "
				f"\"{os.path.join(temp_dir, 'tone.mp3')}\""
			)
			yaml_path = os.path.join(temp_dir, "timeline.yaml")
			_write_yaml(yaml_path, temp_dir)
			utils.set_quiet_mode(True)
			try:
				result = WeaveProject(yaml_path).run()
			finally:
				utils.set_quiet_mode(False)
			video = _probe(result.video.path)
			self.assertEqual(video['types'], {"video"})
			self.assertGreater(video['duration'], 3.8)
			self.assertLess(video['duration'], 4.2)
			audio = _probe(result.audio.path)
			self.assertEqual(audio['types'], {"audio"})
			self.assertGreater(audio['duration'], 3.8)
			self.assertLess(audio['duration'], 4.3)
			final = _probe(os.path.join(temp_dir, "final.mp4"))
			self.assertEqual(final['types'], {"video", "audio"})

#============================================

def main() -> None:
	"""Run the unit tests."""
	unittest.main()

#============================================

if __name__ == '__main__':
	main()

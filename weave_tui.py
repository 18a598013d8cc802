#!/usr/bin/env python3

"""
Textual dashboard for clipweave compositions.
"""

# Standard Library
import argparse
import os
import re
import shlex
import statistics
import sys
import threading
import time
import traceback

script_dir = os.path.dirname(os.path.abspath(__file__))
if script_dir not in sys.path:
	sys.path.insert(0, script_dir)

# PIP3 modules
from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical
from textual.widgets import ProgressBar, RichLog, Static
from rich.text import Text

# local repo modules
from weavelib.core.project import WeaveProject
from weavelib.core import utils

#============================================

NORD_COLORS = {
	'dim': "#4C566A",
	'header': "#88C0D0",
	'foreground': "#D8DEE9",
	'command': "#ECEFF4",
	'flags': "#81A1C1",
	'numbers': "#B48EAD",
	'paths': "#A3BE8C",
	'error': "#BF616A",
}

#============================================

def parse_args():
	"""
	Parse command-line arguments.
	"""
	parser = argparse.ArgumentParser(description="clipweave TUI")
	parser.add_argument('-y', '--yaml', dest='yamlfile', required=True,
		help='timeline yaml file describing the composition')
	parser.add_argument('-o', '--output', dest='output_file',
		help='override the muxed output file from yaml')
	parser.add_argument('-n', '--dry-run', dest='dry_run', action='store_true',
		help='validate only, do not render')
	parser.add_argument('-c', '--cache-dir', dest='cache_dir',
		help='directory for engine scratch files')
	parser.add_argument('-k', '--keep-temp', dest='keep_temp',
		help='keep engine scratch files', action='store_true')
	parser.add_argument('-K', '--no-keep-temp', dest='keep_temp',
		help='remove engine scratch files', action='store_false')
	parser.set_defaults(keep_temp=False)
	args = parser.parse_args()
	return args

#============================================

class WeaveTuiApp(App):
	BINDINGS = [
		("q", "quit", "Quit"),
	]

	CSS = """
	#top_row {
		height: 9;
	}

	#status_panel {
		width: 45%;
		border: solid gray;
	}

	#project_panel {
		width: 55%;
		border: solid gray;
	}

	#progress {
		height: 1;
		margin: 0 1;
	}

	#progress_message {
		height: 1;
		color: #88C0D0;
	}

	#log {
		height: 1fr;
		border: solid gray;
	}
	"""

	def __init__(self, yaml_file: str, output_override: str = None,
		dry_run: bool = False, keep_temp: bool = False, cache_dir: str = None):
		super().__init__()
		self.yaml_file = yaml_file
		self.output_override = output_override
		self.dry_run = dry_run
		self.keep_temp = keep_temp
		self.cache_dir = cache_dir
		self.command_count = 0
		self.command_total = None
		self.command_durations = []
		self.running_commands = {}
		self.percent = 0.0
		self.progress_message = ""
		self.start_time = None
		self.finish_time = None
		self.error_text = None
		self.outputs = {}
		self.finished = False
		self.command_styles = [
			(re.compile(r"\blibx264\b|\bmjpeg\b|\baac\b|\blavfi\b|\bconcat\b"),
				NORD_COLORS['foreground']),
			(re.compile(r"(?<![\w/])-[A-Za-z][A-Za-z0-9_:]*"), NORD_COLORS['flags']),
			(re.compile(r"\b\d+(?:\.\d+)?\b"), NORD_COLORS['numbers']),
			(re.compile(r"\b\w+_[0-9a-f]{32}\.\w+\b"), NORD_COLORS['paths']),
		]

	#============================
	def compose(self) -> ComposeResult:
		yield Static("CLIPWEAVE", id="header")
		with Vertical():
			with Horizontal(id="top_row"):
				yield Static("", id="status_panel")
				yield Static("", id="project_panel")
			yield ProgressBar(total=100, show_eta=False, id="progress")
			yield Static("", id="progress_message")
			yield RichLog(id="log", wrap=True, highlight=False)

	#============================
	def on_mount(self) -> None:
		self.start_time = time.time()
		self._update_project_panel()
		thread = threading.Thread(target=self._run_project, daemon=True)
		thread.start()
		self.set_interval(0.5, self._update_status_panel)

	#============================
	def _run_project(self) -> None:
		utils.set_quiet_mode(True)
		utils.set_command_reporter(self._report_command)
		try:
			project = WeaveProject(self.yaml_file,
				output_override=self.output_override,
				dry_run=self.dry_run,
				keep_temp=self.keep_temp,
				cache_dir=self.cache_dir)
			self.outputs = dict(project.output)
			self.command_total = project.estimate_command_total()
			utils.set_command_total(self.command_total)
			self.call_from_thread(self._update_project_panel)
			project.run(on_progress=self._report_progress)
		except Exception as exc:
			self.call_from_thread(self._set_error, str(exc), traceback.format_exc())
		finally:
			utils.set_command_total(None)
			utils.clear_command_reporter()
			utils.set_quiet_mode(False)
			self.call_from_thread(self._finish)

	#============================
	def _report_progress(self, percent: float, message: str) -> None:
		self.call_from_thread(self._handle_progress, percent, message)

	#============================
	def _handle_progress(self, percent: float, message: str) -> None:
		self.percent = percent
		self.progress_message = message
		self.query_one("#progress", ProgressBar).update(progress=percent)
		self.query_one("#progress_message", Static).update(
			f"{percent:5.1f}%  {message}")

	#============================
	def _report_command(self, event: dict) -> None:
		self.call_from_thread(self._handle_command_event, event)

	#============================
	def _handle_command_event(self, event: dict) -> None:
		log_widget = self.query_one(RichLog)
		command = event.get('command', '')
		index = event.get('index', 0)
		if event.get('event') == 'start':
			self.command_count = max(self.command_count, index)
			self.running_commands[index] = self._summarize_command(command)
			prefix = utils.command_prefix(index, self.command_total)
			log_widget.write(Text(prefix, style=f"bold {NORD_COLORS['header']}"))
			log_widget.write(self._highlight_command(command))
			return
		summary = self.running_commands.pop(index, self._summarize_command(command))
		seconds = event.get('seconds')
		if isinstance(seconds, (int, float)):
			self.command_durations.append(seconds)
		code = event.get('returncode', 0)
		if code != 0:
			log_widget.write(
				Text(f"error ({code}): {summary}", style=f"bold {NORD_COLORS['error']}")
			)

	#============================
	def _set_error(self, text: str, trace_text: str = None) -> None:
		self.error_text = text
		log_widget = self.query_one(RichLog)
		log_widget.write(Text(f"error: {text}", style=f"bold {NORD_COLORS['error']}"))
		if trace_text:
			log_widget.write(Text(trace_text, style=NORD_COLORS['dim']))

	#============================
	def _finish(self) -> None:
		self.finished = True
		self.finish_time = time.time() - self.start_time
		log_widget = self.query_one(RichLog)
		if self.error_text is not None:
			log_widget.write("complete with errors")
		elif self.dry_run:
			log_widget.write("dry run complete")
		else:
			for key in ('video', 'audio', 'file'):
				if self.outputs.get(key) is not None:
					log_widget.write(f"{key}: {self.outputs[key]}")
			log_widget.write("complete")
		self._update_status_panel()

	#============================
	def _summarize_command(self, command: str) -> str:
		if command is None or command == "":
			return "command"
		try:
			parts = shlex.split(command)
		except ValueError:
			return command
		if len(parts) < 2:
			return command
		tool = os.path.basename(parts[0])
		return f"{tool}: {os.path.basename(parts[-1])}"

	#============================
	def _highlight_command(self, command: str):
		text = Text(command, style=f"bold {NORD_COLORS['command']}")
		for pattern, style in self.command_styles:
			for match in pattern.finditer(command):
				text.stylize(style, match.start(), match.end())
		return text

	#============================
	def _update_status_panel(self) -> None:
		if self.start_time is None:
			return
		if self.finished:
			elapsed = self.finish_time
		else:
			elapsed = time.time() - self.start_time
		if self.error_text is not None:
			status = ("failed", NORD_COLORS['error'])
		elif self.finished:
			status = ("done", NORD_COLORS['paths'])
		else:
			status = ("running", NORD_COLORS['foreground'])
		eta = self._estimate_remaining_seconds()
		panel = Text()
		panel.append("Status: ", style=NORD_COLORS['dim'])
		panel.append(status[0], style=status[1])
		panel.append("\nElapsed: ", style=NORD_COLORS['dim'])
		panel.append(self._format_duration(elapsed), style=NORD_COLORS['numbers'])
		panel.append("\nProgress: ", style=NORD_COLORS['dim'])
		panel.append(f"{self.percent:.1f}%", style=NORD_COLORS['numbers'])
		panel.append("\nCommands: ", style=NORD_COLORS['dim'])
		panel.append(f"{self.command_count}", style=NORD_COLORS['numbers'])
		if self.command_total:
			panel.append(f"/{self.command_total}", style=NORD_COLORS['numbers'])
		panel.append(" | ETA: ", style=NORD_COLORS['dim'])
		if eta is None or self.finished:
			panel.append("N/A", style=NORD_COLORS['dim'])
		else:
			panel.append(self._format_duration(eta), style=NORD_COLORS['numbers'])
		panel.append("\nRunning: ", style=NORD_COLORS['dim'])
		panel.append(", ".join(self.running_commands.values()),
			style=NORD_COLORS['foreground'])
		self.query_one("#status_panel", Static).update(panel)

	#============================
	def _update_project_panel(self) -> None:
		panel = Text()
		rows = [
			("YAML", self.yaml_file),
			("Video", self.outputs.get('video')),
			("Audio", self.outputs.get('audio')),
			("Muxed", self.output_override or self.outputs.get('file')),
			("Cache", self.cache_dir),
			("Keep temp", "yes" if self.keep_temp else "no"),
			("Dry run", "yes" if self.dry_run else "no"),
		]
		for label, value in rows:
			panel.append(f"{label}: ", style=NORD_COLORS['dim'])
			if value is None:
				panel.append("N/A\n", style=NORD_COLORS['dim'])
			else:
				panel.append(f"{value}\n", style=NORD_COLORS['paths'])
		self.query_one("#project_panel", Static).update(panel)

	#============================
	def _estimate_remaining_seconds(self):
		if self.command_total is None or self.command_total <= 0:
			return None
		if len(self.command_durations) == 0:
			return None
		remaining = self.command_total - self.command_count
		if remaining <= 0:
			return 0.0
		median = statistics.median(self.command_durations)
		stdev = statistics.pstdev(self.command_durations)
		expected_cmd = median + stdev
		if expected_cmd < 0:
			expected_cmd = 0.0
		return expected_cmd * (remaining + 1)

	#============================
	def _format_duration(self, seconds: float) -> str:
		if seconds < 60:
			return f"{seconds:.1f}s"
		minutes = int(seconds // 60)
		seconds_text = f"{seconds - (minutes * 60):04.1f}"
		if minutes < 60:
			return f"{minutes}m {seconds_text}s"
		hours = minutes // 60
		return f"{hours}h {minutes - (hours * 60):02d}m {seconds_text}s"

#============================================

def main():
	args = parse_args()
	app = WeaveTuiApp(args.yamlfile,
		output_override=args.output_file,
		dry_run=args.dry_run,
		keep_temp=args.keep_temp,
		cache_dir=args.cache_dir)
	app.run()

#============================================

if __name__ == '__main__':
	main()

#!/usr/bin/env python3

"""
ffmpeg engine sessions.

A session owns a scratch directory, runs ffmpeg commands inside it and
streams the ffmpeg log to registered handlers while a command is running.
"""

import asyncio
import contextlib
import os
import shutil
import tempfile
import time
from weavelib.core import utils

#============================================

class FfmpegSession():
	def __init__(self, scratch_dir: str = None, label: str = 'ffmpeg',
		ffmpeg_bin: str = 'ffmpeg', threads: int = None,
		loglevel: str = 'verbose', echo_log: bool = False):
		self.label = label
		self.ffmpeg_bin = ffmpeg_bin
		self.threads = threads
		self.loglevel = loglevel
		self.echo_log = echo_log
		self.scratch_dir_created = False
		if scratch_dir is None:
			scratch_dir = tempfile.mkdtemp(prefix=f"weave-{label}-")
			self.scratch_dir_created = True
		elif not os.path.exists(scratch_dir):
			os.makedirs(scratch_dir)
			self.scratch_dir_created = True
		self.scratch_dir = os.path.abspath(scratch_dir)
		self._log_handlers = []
		if self.echo_log:
			self.on_log(self._echo_line)

	#============================
	def path(self, name: str) -> str:
		return os.path.join(self.scratch_dir, name)

	#============================
	async def write_file(self, name: str, data: bytes) -> str:
		filepath = self.path(name)
		with open(filepath, 'wb') as handle:
			handle.write(data)
		return filepath

	#============================
	async def read_file(self, name: str) -> bytes:
		with open(self.path(name), 'rb') as handle:
			return handle.read()

	#============================
	async def delete_file(self, name: str) -> None:
		filepath = self.path(name)
		if os.path.exists(filepath):
			os.remove(filepath)

	#============================
	@contextlib.asynccontextmanager
	async def scratch_file(self, name: str, data: bytes = None):
		"""
		Scratch file removed on every exit path.
		"""
		if data is not None:
			await self.write_file(name, data)
		try:
			yield name
		finally:
			await self.delete_file(name)

	#============================
	def on_log(self, handler):
		"""
		Register a log line handler, returning a callable that removes it.
		"""
		self._log_handlers.append(handler)

		def _remove() -> None:
			if handler in self._log_handlers:
				self._log_handlers.remove(handler)

		return _remove

	#============================
	def log_handler_count(self) -> int:
		return len(self._log_handlers)

	#============================
	def _emit_line(self, line: str) -> None:
		# copy, handlers may detach themselves while being called
		for handler in list(self._log_handlers):
			handler(line)

	#============================
	def _echo_line(self, line: str) -> None:
		utils.log_message(f"ffmpeg {self.label}: {line}")

	#============================
	def build_command(self, args: list) -> list:
		cmd = [self.ffmpeg_bin, '-hide_banner', '-nostdin', '-y']
		if self.loglevel is not None:
			cmd += ['-loglevel', self.loglevel, '-stats']
		args = [str(arg) for arg in args]
		if self.threads is not None and len(args) > 0:
			# output option, must precede the output file
			args = args[:-1] + ['-threads', str(self.threads)] + args[-1:]
		return cmd + args

	#============================
	async def exec(self, args: list) -> int:
		"""
		Run one ffmpeg command in the scratch directory.

		Returns:
			int: ffmpeg exit status, 0 on success.
		"""
		cmd = self.build_command(args)
		index = utils.report_command_start(cmd)
		t0 = time.time()
		proc = await asyncio.create_subprocess_exec(*cmd,
			cwd=self.scratch_dir,
			stdin=asyncio.subprocess.DEVNULL,
			stdout=asyncio.subprocess.DEVNULL,
			stderr=asyncio.subprocess.PIPE)
		try:
			await self._pump_log(proc.stderr)
			returncode = await proc.wait()
		except BaseException:
			# cancellation or a failing log handler, ffmpeg must not outlive us
			await self._terminate(proc)
			raise
		utils.report_command_end(cmd, index, returncode, time.time() - t0)
		return returncode

	#============================
	async def _pump_log(self, stream) -> None:
		# progress lines end with CR, diagnostics with LF
		pending = b""
		while True:
			chunk = await stream.read(4096)
			if not chunk:
				break
			pending += chunk.replace(b"\r\n", b"\n").replace(b"\r", b"\n")
			lines = pending.split(b"\n")
			pending = lines.pop()
			for raw_line in lines:
				self._dispatch(raw_line)
		if pending:
			self._dispatch(pending)

	#============================
	def _dispatch(self, raw_line: bytes) -> None:
		line = raw_line.decode('utf-8', errors='replace').strip()
		if line == "":
			return
		self._emit_line(line)

	#============================
	async def _terminate(self, proc) -> None:
		if proc.returncode is not None:
			return
		proc.terminate()
		try:
			await asyncio.wait_for(proc.wait(), timeout=5.0)
		except asyncio.TimeoutError:
			proc.kill()
			await proc.wait()

	#============================
	def close(self, keep_temp: bool = False) -> None:
		self._log_handlers = []
		if keep_temp or not self.scratch_dir_created:
			return
		shutil.rmtree(self.scratch_dir, ignore_errors=True)

#============================================

class EnginePool():
	"""
	Caller-owned engine sessions, created lazily at most once per kind.

	The video session runs multi-threaded, the audio session single-threaded;
	the two tracks can therefore be rendered side by side.
	"""
	def __init__(self, cache_dir: str = None, ffmpeg_bin: str = 'ffmpeg',
		video_threads: int = 0, audio_threads: int = 1,
		loglevel: str = 'verbose', echo_log: bool = False,
		keep_temp: bool = False):
		self.cache_dir = cache_dir
		self.ffmpeg_bin = ffmpeg_bin
		self.video_threads = video_threads
		self.audio_threads = audio_threads
		self.loglevel = loglevel
		self.echo_log = echo_log
		self.keep_temp = keep_temp
		self._video_session = None
		self._audio_session = None

	#============================
	def __enter__(self):
		return self

	#============================
	def __exit__(self, exc_type, exc_value, traceback) -> None:
		self.close()

	#============================
	def _make_session(self, label: str, threads: int) -> FfmpegSession:
		scratch_dir = None
		if self.cache_dir is not None:
			scratch_dir = os.path.join(self.cache_dir, label)
		return FfmpegSession(scratch_dir=scratch_dir, label=label,
			ffmpeg_bin=self.ffmpeg_bin, threads=threads,
			loglevel=self.loglevel, echo_log=self.echo_log)

	#============================
	@property
	def video(self) -> FfmpegSession:
		if self._video_session is None:
			self._video_session = self._make_session('video', self.video_threads)
		return self._video_session

	#============================
	@property
	def audio(self) -> FfmpegSession:
		if self._audio_session is None:
			self._audio_session = self._make_session('audio', self.audio_threads)
		return self._audio_session

	#============================
	def close(self) -> None:
		for session in (self._video_session, self._audio_session):
			if session is not None:
				session.close(keep_temp=self.keep_temp)
		self._video_session = None
		self._audio_session = None

#!/usr/bin/env python3

#============================================

class CompositionError(RuntimeError):
	"""
	Base failure of a composition call, tagged with the stage that failed.
	"""
	def __init__(self, message: str, stage: str = None):
		super().__init__(message)
		self.stage = stage

#============================================

class EncodingError(CompositionError):
	"""
	The encoding engine returned a non-zero exit status.
	"""
	def __init__(self, message: str, stage: str = None, exit_code: int = None,
		command: list = None):
		if stage is not None:
			message = f"{stage}: {message}"
		if exit_code is not None:
			message = f"{message} (exit code {exit_code})"
		super().__init__(message, stage=stage)
		self.exit_code = exit_code
		self.command = command

#============================================

class MalformedInputError(CompositionError):
	"""
	A segment time range is degenerate (end <= start).
	"""
	pass

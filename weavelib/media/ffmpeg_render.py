#!/usr/bin/env python3

import os
from weavelib.core import utils
from weavelib.core.errors import EncodingError

#============================================

async def muxTracks(session, video_file: str, audio_file: str,
	output_file: str, audio_codec: str = 'aac') -> str:
	"""
	Put the silent video and the mixed audio into one deliverable file.
	"""
	args = [
		'-i', video_file,
		'-i', audio_file,
		'-sn',
		'-map', '0:v', '-map', '1:a',
		'-c:v', 'copy',
		'-c:a', audio_codec,
		'-shortest',
		output_file,
	]
	exit_code = await session.exec(args)
	if exit_code != 0:
		raise EncodingError("error while muxing video and audio",
			stage='deliver.mux', exit_code=exit_code, command=args)
	utils.ensure_file_exists(session.path(output_file))
	utils.log_message(f"mpv {os.path.basename(output_file)}")
	return output_file

"""
IssueCast - Narrated slide videos from GitHub issues and pull requests.

A sequential pipeline for:
- Extracting an issue or pull request (with comments and commits) from GitHub
- Writing a sectioned video script with GPT
- Synthesizing narration with OpenAI TTS
- Rendering one slide per script section
- Composing slides and narration into an MP4 with ffmpeg
- Uploading to YouTube and posting the link back to the issue
"""

__version__ = "0.1.0"

"""
Timed Dub Track - time-aligned dubbed audio tracks from captioned videos.

A pipeline for:
- Fetching video metadata and captions
- Merging caption fragments into speakable units
- Translating units with GPT while keeping original timestamps
- Synthesizing speech with OpenAI, ElevenLabs or Edge TTS
- Fitting each clip before the next unit starts
- Mixing all clips onto one loudness-normalized track
"""

__version__ = "0.1.0"

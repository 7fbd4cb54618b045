"""Speech-output subsystem."""

from sathi.tts.audio_player import AudioPlayer
from sathi.tts.elevenlabs_synthesizer import ElevenLabsSynthesizer
from sathi.tts.speech_output import SpeechOutput, select_voice
from sathi.tts.synthesizer import Synthesizer
from sathi.tts.types import SpeechOptions, SpeechState, Utterance, Voice

__all__ = [
    "AudioPlayer",
    "ElevenLabsSynthesizer",
    "SpeechOptions",
    "SpeechOutput",
    "SpeechState",
    "Synthesizer",
    "Utterance",
    "Voice",
    "select_voice",
]

"""All magic numbers and default configuration constants."""

GAP_NARRATION_TO_DIALOGUE = 0.22    # seconds: pause before a character speaks
GAP_DIALOGUE_TO_NARRATION = 0.18    # seconds: pause before narration resumes
GAP_DIALOGUE_TO_DIALOGUE = 0.12     # seconds: brief beat between speakers
GAP_NARRATION_TO_NARRATION = 0.0    # continuous narration has no gap
GAP_BETWEEN_SCENES = 0.5            # seconds: screenplay scene change
EFFECT_TARGET_PEAK = 0.6            # peak amplitude every effect is scaled to
SILENT_EFFECT_GAIN = 0.6            # gain for effects with a zero peak
MUSIC_GAIN = 0.18                   # flat attenuation for music beds
DEFAULT_SAMPLE_RATE = 44100         # used when no speech clip decoded
DEFAULT_CHANNELS = 1
MAX_RENDER_SECONDS = 6 * 60 * 60    # refuse to allocate longer mixes
MAX_DECODE_WORKERS = 4              # thread pool size for clip decoding
PCM_BITS_PER_SAMPLE = 16
WAV_HEADER_SIZE = 44
SCENE_TAIL_SECONDS = 5.0            # last scene length when the total is unknown
DEFAULT_PRESET = "screenplay"
VERSION = "0.1.0"

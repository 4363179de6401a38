"""Image to ASCII conversion: decode, validate, resample, render."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from charsets import get_glyph_ramp, render_rows
from pgm_decoder import MalformedRasterError, decode_pgm, read_header
from resampler import destination_size, resample

ERROR_SENTINEL = '-'

DEFAULT_MARGIN_WIDTH = 50
DEFAULT_MARGIN_HEIGHT = 280
DEFAULT_MAX_SCALE_FACTOR = 10.0

MSG_NO_INPUT = "Please select an image"
MSG_TOO_LARGE = "Image is too large to be displayed on the screen\nTry increasing the scale factor."
MSG_INVALID_SCALE = "Invalid scale factor."
MSG_MALFORMED = "Could not read the converted image."


class ErrorKind(Enum):
    NO_INPUT_SELECTED = 'no_input_selected'
    OUTPUT_TOO_LARGE = 'output_too_large'
    INVALID_SCALE_FACTOR = 'invalid_scale_factor'
    MALFORMED_RASTER = 'malformed_raster'


@dataclass(frozen=True)
class ConversionConfig:
    enforce_size_limit: bool = True
    invert_ramp: bool = False
    max_scale_factor: float = DEFAULT_MAX_SCALE_FACTOR
    margin_width: int = DEFAULT_MARGIN_WIDTH
    margin_height: int = DEFAULT_MARGIN_HEIGHT


@dataclass(frozen=True)
class ConversionRequest:
    source: Optional[str]
    scale_factor: float = 1.0
    bounds_width: int = 1920
    bounds_height: int = 1080
    config: ConversionConfig = field(default_factory=ConversionConfig)


@dataclass(frozen=True)
class ConversionResult:
    text: str = ''
    error: Optional[ErrorKind] = None
    message: str = ''

    @property
    def ok(self):
        return self.error is None

    @classmethod
    def success(cls, text):
        return cls(text=text)

    @classmethod
    def failure(cls, error, message):
        return cls(error=error, message=message)

    def as_text(self):
        """Legacy single-string form: the art, or the sentinel plus the message."""
        if self.ok:
            return self.text
        return ERROR_SENTINEL + self.message


def validate_destination(dest_width, dest_height, request):
    config = request.config
    if config.enforce_size_limit and (dest_width > request.bounds_width - config.margin_width or
                                      dest_height > request.bounds_height - config.margin_height):
        return ConversionResult.failure(ErrorKind.OUTPUT_TOO_LARGE, MSG_TOO_LARGE)
    if dest_width <= 0 or dest_height <= 0:
        return ConversionResult.failure(ErrorKind.INVALID_SCALE_FACTOR, MSG_INVALID_SCALE)
    return None


class ConversionPipeline:
    """Runs one conversion at a time against a shared ``ConversionState``.

    ``raster_source`` is the external collaborator that turns an image path
    into plain PGM bytes. Its failures are not checked here and only show up
    as malformed rasters.
    """

    def __init__(self, raster_source):
        self.raster_source = raster_source

    def run(self, request, state, observer=None, reset=True):
        if reset:
            state.reset()

        if not request.source:
            return self._fail(state, observer, ConversionResult.failure(ErrorKind.NO_INPUT_SELECTED, MSG_NO_INPUT))

        scale_factor = request.scale_factor
        if not (1.0 <= scale_factor <= request.config.max_scale_factor):
            return self._fail(state, observer,
                              ConversionResult.failure(ErrorKind.INVALID_SCALE_FACTOR, MSG_INVALID_SCALE))

        try:
            raw = self.raster_source.acquire(request.source)
        except OSError as e:
            print(f"Warning: Could not read image '{request.source}': {e}")
            raw = b''

        try:
            width, height, _, _ = read_header(raw)
        except MalformedRasterError as e:
            return self._fail(state, observer, self._malformed(e))

        dest_width, dest_height = destination_size(width, height, scale_factor)
        error = validate_destination(dest_width, dest_height, request)
        if error is not None:
            return self._fail(state, observer, error)

        progress_frac = 1.0 / height

        def on_row(rows_done):
            done = state.add_progress(progress_frac)
            if observer is not None:
                observer.on_progress(done)
            return not state.cancel_requested

        try:
            decoded = decode_pgm(raw, on_row=on_row)
        except MalformedRasterError as e:
            return self._fail(state, observer, self._malformed(e))

        if decoded.stopped or state.cancel_requested:
            state.mark_cancelled()
            if observer is not None:
                observer.on_cancelled()
            return None

        scaled = resample(decoded.grid, dest_height, dest_width, scale_factor)
        ramp = get_glyph_ramp(request.config.invert_ramp)
        result = ConversionResult.success(render_rows(scaled, ramp))

        state.complete(result)
        if observer is not None:
            observer.on_complete(result.text, False)
        return result

    @staticmethod
    def _malformed(error):
        return ConversionResult.failure(ErrorKind.MALFORMED_RASTER, f"{MSG_MALFORMED}\n{error}")

    @staticmethod
    def _fail(state, observer, result):
        state.fail(result)
        if observer is not None:
            observer.on_complete(result.message, True)
        return result

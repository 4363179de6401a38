import os
import shutil
import subprocess
import tempfile

import cv2
import numpy as np
from PIL import Image

MAGICK_PATH = 'magick'
PGM_EXTENSIONS = ['.pgm']


def setup_magick():
    global MAGICK_PATH
    for candidate in ('magick', 'convert'):
        path = shutil.which(candidate)
        if path:
            MAGICK_PATH = path
            print(f"Using ImageMagick from: {MAGICK_PATH}")
            return MAGICK_PATH
    print("ImageMagick not found. Falling back to OpenCV/Pillow conversion.")
    return None


def encode_plain_pgm(gray):
    gray = np.asarray(gray)
    height, width = gray.shape
    lines = [f"P2\n{width} {height}\n255\n"]
    lines.extend(' '.join(map(str, row)) + '\n' for row in gray.tolist())
    return ''.join(lines).encode('ascii')


class PgmFileSource:
    def acquire(self, path):
        with open(path, 'rb') as f:
            return f.read()

    def cleanup(self):
        pass


class MagickRasterSource:
    """Converts images to plain PGM with the ImageMagick command line tool.

    The last converted path is cached, so running the same image again skips
    the external conversion.
    """

    def __init__(self, magick_path=None):
        self.magick_path = magick_path or MAGICK_PATH
        self.temp_dir = tempfile.mkdtemp()
        self.output_path = os.path.join(self.temp_dir, "out.pgm")
        self.cached_path = None

    def build_command(self, path):
        return [self.magick_path, path, '-depth', '8', '-compress', 'none', self.output_path]

    def convert(self, path):
        try:
            result = subprocess.run(self.build_command(path), capture_output=True, text=True)
        except FileNotFoundError as e:
            print(f"Warning: Could not run ImageMagick: {e}")
            return False
        if result.returncode != 0:
            print(f"Warning: ImageMagick exited with status {result.returncode}: {result.stderr.strip()}")
            return False
        return True

    def acquire(self, path):
        if self.cached_path != path:
            self.cached_path = None
            if os.path.exists(self.output_path):
                os.remove(self.output_path)
            if self.convert(path):
                self.cached_path = path
        if not os.path.exists(self.output_path):
            return b''
        with open(self.output_path, 'rb') as f:
            return f.read()

    def cleanup(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)


class LocalRasterSource:
    """In-process conversion: OpenCV first, Pillow for what OpenCV cannot open (GIF)."""

    def acquire(self, path):
        gray = cv2.imread(path, cv2.IMREAD_GRAYSCALE)
        if gray is None:
            try:
                with Image.open(path) as img:
                    gray = np.asarray(img.convert("L"))
            except OSError as e:
                print(f"Warning: Could not open image '{path}': {e}")
                return b''
        return encode_plain_pgm(gray)

    def cleanup(self):
        pass


class AutoRasterSource:
    def __init__(self, converter):
        self.converter = converter
        self.pgm_source = PgmFileSource()

    def acquire(self, path):
        if os.path.splitext(path)[1].lower() in PGM_EXTENSIONS:
            return self.pgm_source.acquire(path)
        return self.converter.acquire(path)

    def cleanup(self):
        self.converter.cleanup()


def default_raster_source(converter='auto'):
    if converter == 'local':
        return AutoRasterSource(LocalRasterSource())
    if converter == 'magick':
        setup_magick()
        return AutoRasterSource(MagickRasterSource())
    if setup_magick():
        return AutoRasterSource(MagickRasterSource())
    return AutoRasterSource(LocalRasterSource())

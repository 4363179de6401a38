import pytest

from ascii_worker import ConversionObserver

SAMPLE_PGM = b"P2\n4 2\n255\n0 85 170 254 254 170 85 0\n"


def make_pgm(width, height, value=0):
    body = " ".join([str(value)] * (width * height))
    return f"P2\n{width} {height}\n255\n{body}\n".encode('ascii')


class StaticRasterSource:
    def __init__(self, data):
        self.data = data
        self.calls = []

    def acquire(self, path):
        self.calls.append(path)
        return self.data


class RecordingObserver(ConversionObserver):
    def __init__(self):
        self.progress = []
        self.completed = []
        self.cancelled = 0

    def on_progress(self, done_fraction):
        self.progress.append(done_fraction)

    def on_complete(self, text, is_error):
        self.completed.append((text, is_error))

    def on_cancelled(self):
        self.cancelled += 1


@pytest.fixture
def observer():
    return RecordingObserver()

"""
Stream doubles shared by the test modules
"""

import io

import pytest


class StreamReader(io.RawIOBase):
    """Readable stream that cannot seek, like a pipe"""

    def __init__(self, data, on_read=None):
        self._data = io.BytesIO(data)
        self._on_read = on_read
        self.reads = 0

    def readable(self):
        return True

    def readinto(self, b):
        count = self._data.readinto(b)
        if count:
            self.reads += 1
            if self._on_read:
                self._on_read(self.reads)
        return count


class StreamWriter(io.RawIOBase):
    """Writable stream that cannot seek"""

    def __init__(self):
        self.data = bytearray()

    def writable(self):
        return True

    def write(self, b):
        self.data.extend(b)
        return len(b)


class ShortWriter(io.BytesIO):
    def write(self, b):
        super().write(bytes(b)[:-1])
        return len(b) - 1


class FailingReader(StreamReader):
    def readinto(self, b):
        raise OSError("device is gone")



@pytest.fixture
def stream_reader():
    """Factory for non-seekable input streams"""
    return StreamReader


@pytest.fixture
def stream_writer():
    return StreamWriter()


@pytest.fixture
def short_writer():
    return ShortWriter()


@pytest.fixture
def failing_reader():
    return FailingReader(b'')

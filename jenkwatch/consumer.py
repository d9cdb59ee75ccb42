# Licensed to the Apache Software Foundation (ASF) under one
# or more contributor license agreements.  See the NOTICE file
# distributed with this work for additional information
# regarding copyright ownership.  The ASF licenses this file
# to you under the Apache License, Version 2.0 (the
# "License"); you may not use this file except in compliance
# with the License.  You may obtain a copy of the License at
#
#   http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing,
# software distributed under the License is distributed on an
# "AS IS" BASIS, WITHOUT WARRANTIES OR CONDITIONS OF ANY
# KIND, either express or implied.  See the License for the
# specific language governing permissions and limitations
# under the License.

import logging
import shutil
import subprocess
from typing import BinaryIO, Generator, List, Sequence

from jenkwatch.log_session import JobLogSession

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 8192


def viewer_available(command: Sequence[str]) -> bool:
    """Return True if the program of ``command`` is on the PATH."""
    return bool(command) and shutil.which(command[0]) is not None


class LogStreamConsumer:
    """
    Responsible for pulling console output out of a log session and handing
    it to a sink.

    Chunks the server reports as incomplete are re-fetched transparently, so
    consumers only ever see data or the end of the log.

    :param session: The log session to read from.
    :param chunk_size: The maximum number of bytes read per call.
    """

    def __init__(self, session: JobLogSession, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self.session = session
        self.chunk_size = chunk_size

    def iter_chunks(self) -> Generator[bytes, None, None]:
        """Yield console output as it arrives until the job has finished."""
        buffer = bytearray(self.chunk_size)
        view = memoryview(buffer)
        while True:
            n = self.session.readinto(view)
            if n is None:
                continue
            if n == 0:
                return
            yield bytes(view[:n])

    def __iter__(self) -> Generator[bytes, None, None]:
        r"""Yield log items divided by the '\n' symbol."""
        incomplete_log_item: List[bytes] = []
        for data_chunk in self.iter_chunks():
            if b"\n" in data_chunk:
                log_items = data_chunk.split(b"\n")
                yield from self._extract_log_items(incomplete_log_item, log_items)
                incomplete_log_item = self._save_incomplete_log_item(log_items[-1])
            else:
                incomplete_log_item.append(data_chunk)
        if incomplete_log_item:
            yield b"".join(incomplete_log_item)

    @staticmethod
    def _extract_log_items(incomplete_log_item: List[bytes], log_items: List[bytes]):
        yield b"".join(incomplete_log_item) + log_items[0] + b"\n"
        for x in log_items[1:-1]:
            yield x + b"\n"

    @staticmethod
    def _save_incomplete_log_item(sub_chunk: bytes) -> List[bytes]:
        return [sub_chunk] if sub_chunk else []

    def copy_to(self, sink: BinaryIO) -> int:
        """
        Write the console output to a binary sink, flushing after every chunk.

        :param sink: A writable binary file object, e.g. ``sys.stdout.buffer``.
        :return: The number of bytes written.
        """
        total = 0
        for chunk in self.iter_chunks():
            sink.write(chunk)
            sink.flush()
            total += len(chunk)
        return total

    def pipe_to(self, command: Sequence[str]) -> int:
        """
        Feed the console output to ``command`` through its standard input.

        The copy stops early if the command closes its input, e.g. because
        the user quit the viewer.

        :param command: The program and its arguments.
        :return: The exit code of the command.
        """
        logger.debug("Piping log into %s", " ".join(command))
        with subprocess.Popen(list(command), stdin=subprocess.PIPE) as process:
            try:
                self.copy_to(process.stdin)
            except BrokenPipeError:
                logger.debug("%s stopped reading its input", command[0])
            finally:
                try:
                    process.stdin.close()
                except BrokenPipeError:
                    pass
        return process.returncode

"""
Tests for instructions_service.py - instructions text and file loading.
"""

import pytest

from core.services import FileErrorReason, InstructionsFileError, InstructionsService
from core.services.instructions_service import read_instructions_file


class TestReadInstructionsFile:

    def test_reads_verbatim(self, tmp_path):
        path = tmp_path / "task.txt"
        path.write_bytes("Строка 1\r\nСтрока 2\n".encode("utf-8"))
        assert read_instructions_file(path) == "Строка 1\r\nСтрока 2\n"

    def test_size_checked_before_extension(self, tmp_path):
        path = tmp_path / "big.pdf"
        path.write_bytes(b"x" * 11)
        with pytest.raises(InstructionsFileError) as exc:
            read_instructions_file(path, max_bytes=10)
        assert exc.value.reason == FileErrorReason.OVERSIZE

    def test_wrong_extension(self, tmp_path):
        path = tmp_path / "task.md"
        path.write_text("x", encoding="utf-8")
        with pytest.raises(InstructionsFileError) as exc:
            read_instructions_file(path)
        assert exc.value.reason == FileErrorReason.WRONG_EXTENSION
        assert str(exc.value) == "Поддерживаются только .txt файлы"

    def test_missing_file(self, tmp_path):
        with pytest.raises(InstructionsFileError) as exc:
            read_instructions_file(tmp_path / "missing.txt")
        assert exc.value.reason == FileErrorReason.READ_FAILED

    def test_not_utf8(self, tmp_path):
        path = tmp_path / "latin.txt"
        path.write_bytes(b"\xff\xfe\xfa")
        with pytest.raises(InstructionsFileError) as exc:
            read_instructions_file(path)
        assert exc.value.reason == FileErrorReason.READ_FAILED


class TestInstructionsService:

    def test_load_replaces_text(self, tmp_path, channel):
        path = tmp_path / "task.txt"
        path.write_text("Оценить участие", encoding="utf-8")
        service = InstructionsService(channel)
        service.set_text("old")

        assert service.load_file(path)
        assert service.text == "Оценить участие"
        assert channel.last_success.message == "Файл успешно загружен"

    def test_rejected_file_keeps_text(self, tmp_path, channel):
        path = tmp_path / "big.txt"
        path.write_text("x" * 20, encoding="utf-8")
        service = InstructionsService(channel, max_bytes=10)
        service.set_text("old")

        assert not service.load_file(path)
        assert service.text == "old"
        assert channel.last_error.message == "Размер файла не должен превышать 5MB"

    def test_has_instructions(self):
        service = InstructionsService()
        assert not service.has_instructions
        service.set_text("  \n ")
        assert not service.has_instructions
        service.set_text("x")
        assert service.has_instructions
        service.clear()
        assert service.text == ""

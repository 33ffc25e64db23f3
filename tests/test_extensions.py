import unittest
from cecilefy.extensions import (
    ext_from_content_disposition,
    ext_from_content_type,
    ext_from_path,
    finalize_download,
    finalize_filename,
    resolve_header_extension,
    sniff_extension,
)

PNG = bytes([0x89, 0x50, 0x4E, 0x47, 0x0D, 0x0A, 0x1A, 0x0A])


def fixed_suffix():
    return 123456


class TestHeaderSignals(unittest.TestCase):
    def test_content_disposition(self):
        self.assertEqual(ext_from_content_disposition('attachment; filename="Clip.MP4"'), "mp4")
        self.assertEqual(ext_from_content_disposition("attachment; filename*=UTF-8''a%2Eflac"), "flac")
        self.assertIsNone(ext_from_content_disposition('attachment; filename="noext"'))
        self.assertIsNone(ext_from_content_disposition('attachment; filename="a.toolong"'))
        self.assertIsNone(ext_from_content_disposition(None))

    def test_path(self):
        self.assertEqual(ext_from_path("https://example.com/a/b.PNG"), "png")
        self.assertEqual(ext_from_path("https://example.com/song.mp3?token=abc"), "mp3")
        self.assertIsNone(ext_from_path("https://example.com/data"))
        self.assertIsNone(ext_from_path("https://example.com/v1.2/stream"))

    def test_content_type_table(self):
        cases = {
            "video/mp4": "mp4",
            "video/webm": "webm",
            "audio/mpeg": "mp3",
            "audio/ogg; codecs=opus": "ogg",
            "image/png": "png",
            "image/jpeg": "jpg",
            "image/JPG": "jpg",
            "image/gif": "gif",
            "application/pdf": "pdf",
        }
        for content_type, ext in cases.items():
            with self.subTest(content_type=content_type):
                self.assertEqual(ext_from_content_type(content_type), ext)
        self.assertIsNone(ext_from_content_type("application/octet-stream"))
        self.assertIsNone(ext_from_content_type(None))

    def test_disposition_beats_path_beats_content_type(self):
        self.assertEqual(
            resolve_header_extension(
                "https://example.com/file.bar", "image/png", 'attachment; filename="x.foo"'
            ),
            "foo",
        )
        self.assertEqual(resolve_header_extension("https://example.com/file.bar", "image/png", None), "bar")
        self.assertEqual(resolve_header_extension("https://example.com/file", "image/png", None), "png")
        self.assertIsNone(resolve_header_extension("https://example.com/file", None, None))


class TestSniffing(unittest.TestCase):
    def test_magic_bytes(self):
        cases = {
            b"\xff\xd8\xff\xe0rest": "jpg",
            PNG: "png",
            b"GIF89a": "gif",
            b"\x1a\x45\xdf\xa3\x01": "webm",
            b"\x00\x00\x00\x20ftypisom": "mp4",
            b"ID3\x04\x00": "mp3",
            b"\xff\xfb\x90\x64": "mp3",
        }
        for chunk, ext in cases.items():
            with self.subTest(chunk=chunk):
                self.assertEqual(sniff_extension(chunk), ext)

    def test_needs_four_bytes(self):
        self.assertIsNone(sniff_extension(b"\xff\xd8\xff"))
        self.assertIsNone(sniff_extension(b""))
        self.assertIsNone(sniff_extension(None))

    def test_unknown(self):
        self.assertIsNone(sniff_extension(b"<html><body>"))
        # 0xFF followed by a byte without the sync bits
        self.assertIsNone(sniff_extension(b"\xff\x10\x00\x00"))


class TestFinalizeFilename(unittest.TestCase):
    def test_appends_extension_to_dotless_hint(self):
        self.assertEqual(finalize_filename("my song", "mp3"), "my song.mp3")

    def test_dotless_hint_without_extension_gets_bin(self):
        self.assertEqual(finalize_filename("blob", None), "blob.bin")

    def test_replaces_placeholder_bin(self):
        self.assertEqual(finalize_filename("clip.BIN", "webm"), "clip.webm")
        self.assertEqual(finalize_filename("clip.bin", None), "clip.bin")

    def test_keeps_hint_with_own_extension(self):
        self.assertEqual(finalize_filename("report.final.txt", "pdf"), "report.final.txt")

    def test_synthesizes_name(self):
        self.assertEqual(finalize_filename(None, "png", fixed_suffix), "Cecilefy.xyz_123456.png")
        self.assertEqual(finalize_filename(None, None, fixed_suffix), "Cecilefy.xyz_123456.bin")

    def test_random_suffix_is_six_digits(self):
        name = finalize_filename(None, "gif")
        suffix = name[len("Cecilefy.xyz_"):-len(".gif")]
        self.assertEqual(len(suffix), 6)
        self.assertTrue(suffix.isdigit())

    def test_finalize_download(self):
        resolved = finalize_download(None, None, None, fixed_suffix)
        self.assertIsNone(resolved.extension)
        self.assertEqual(resolved.content_type, "application/octet-stream")
        self.assertEqual(resolved.content_disposition, 'attachment; filename="Cecilefy.xyz_123456.bin"')


if __name__ == "__main__":
    unittest.main()

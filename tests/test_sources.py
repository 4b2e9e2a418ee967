# /tests/test_sources.py

import unittest
import tempfile
import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from ingestion.sources import LocalDirectorySource, title_from_text


class TestLocalDirectorySource(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)

    def write(self, name, content):
        with open(os.path.join(self.tmp.name, name), "w", encoding="utf-8") as f:
            f.write(content)

    def test_loads_text_and_markdown_files(self):
        self.write("b_report.md", "# Quarterly revenue\n\nRevenue grew 12%.")
        self.write("a_notes.txt", "Alice met Bob in Bangkok.")
        self.write("image.png", "not text")
        self.write("empty.txt", "   \n")

        articles = LocalDirectorySource(self.tmp.name, article_type="revenue-analysis").load_articles()

        self.assertEqual([a.title for a in articles], ["a_notes", "Quarterly revenue"])
        self.assertTrue(all(a.article_type == "revenue-analysis" for a in articles))
        self.assertEqual(articles[0].content, "Alice met Bob in Bangkok.")

    def test_unreadable_files_are_skipped(self):
        self.write("good.txt", "Alice met Bob in Bangkok.")
        with open(os.path.join(self.tmp.name, "bad.txt"), "wb") as f:
            f.write(b"\xff\xfe\xfa")
        os.mkdir(os.path.join(self.tmp.name, "folder.md"))

        articles = LocalDirectorySource(self.tmp.name).load_articles()

        self.assertEqual([a.title for a in articles], ["good"])

    def test_invalid_directory(self):
        with self.assertRaises(ValueError):
            LocalDirectorySource(os.path.join(self.tmp.name, "missing"))

    def test_title_from_text(self):
        self.assertEqual(title_from_text("intro\n## The case \nbody"), "The case")
        self.assertIsNone(title_from_text("no heading here"))


if __name__ == '__main__':
    unittest.main()

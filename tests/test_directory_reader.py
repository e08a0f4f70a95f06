import os
import tempfile
import unittest
from unittest import mock

from _support import write_file

from duofm.core.errors import PathUnreadable
from duofm.filemanager.core import (
    Entry,
    SortMode,
    fit_text_to_cells,
    format_size,
    read_directory,
    sort_entries,
)


def _entry(name, is_dir=False, size=0, mtime=0.0):
    return Entry(name, is_dir, os.path.join('/x', name), size, mtime)


class ReadDirectoryTests(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.base = self.tmp.name

    def test_lists_files_and_directories_with_metadata(self):
        write_file(os.path.join(self.base, 'a.TXT'), b'12345', mtime=1000)
        os.mkdir(os.path.join(self.base, 'sub'))

        entries = {e.name: e for e in read_directory(self.base)}

        self.assertEqual(set(entries), {'a.TXT', 'sub'})
        self.assertFalse(entries['a.TXT'].is_dir)
        self.assertEqual(entries['a.TXT'].size, 5)
        self.assertEqual(entries['a.TXT'].modified_at, 1000)
        self.assertEqual(entries['a.TXT'].extension, 'txt')
        self.assertTrue(entries['sub'].is_dir)
        self.assertEqual(entries['sub'].size, 0)
        self.assertEqual(entries['sub'].extension, '')

    def test_hidden_entries_filtered_on_request(self):
        write_file(os.path.join(self.base, '.hidden'))
        write_file(os.path.join(self.base, 'shown'))
        names = [e.name for e in read_directory(self.base, show_hidden=False)]
        self.assertEqual(names, ['shown'])
        self.assertEqual(len(read_directory(self.base, show_hidden=True)), 2)

    def test_broken_symlink_kept_without_metadata(self):
        os.symlink(os.path.join(self.base, 'missing'), os.path.join(self.base, 'dangling'))
        entries = read_directory(self.base)
        self.assertEqual(len(entries), 1)
        self.assertEqual(entries[0].name, 'dangling')
        self.assertEqual(entries[0].size, 0)
        self.assertEqual(entries[0].modified_at, 0.0)

    def test_missing_directory_raises_path_unreadable(self):
        with self.assertRaises(PathUnreadable):
            read_directory(os.path.join(self.base, 'nope'))

    def test_file_path_raises_path_unreadable(self):
        path = write_file(os.path.join(self.base, 'f'))
        with self.assertRaises(PathUnreadable):
            read_directory(path)

    def test_permission_error_is_reported(self):
        with mock.patch('duofm.filemanager.core.os.scandir', side_effect=PermissionError(13, 'denied')):
            with self.assertRaises(PathUnreadable) as ctx:
                read_directory(self.base)
        self.assertIn('Permission denied', str(ctx.exception))


class SortEntriesTests(unittest.TestCase):
    def setUp(self):
        self.entries = [
            _entry('b.txt', size=10, mtime=300),
            _entry('zdir', is_dir=True, mtime=100),
            _entry('A.md', size=300, mtime=100),
            _entry('adir', is_dir=True, mtime=500),
            _entry('c.py', size=10, mtime=200),
            _entry('a.md', size=5, mtime=300),
        ]

    def names(self, mode):
        return [e.name for e in sort_entries(self.entries, mode)]

    def test_directories_always_first(self):
        for mode in SortMode:
            ordered = sort_entries(self.entries, mode)
            kinds = [e.is_dir for e in ordered]
            self.assertEqual(kinds, sorted(kinds, reverse=True), mode)

    def test_name_is_case_insensitive_with_case_tiebreak(self):
        self.assertEqual(self.names(SortMode.NAME), ['adir', 'zdir', 'A.md', 'a.md', 'b.txt', 'c.py'])

    def test_modtime_newest_first_ties_by_name(self):
        self.assertEqual(self.names(SortMode.MODTIME), ['adir', 'zdir', 'a.md', 'b.txt', 'c.py', 'A.md'])

    def test_size_largest_first_ties_by_name(self):
        self.assertEqual(self.names(SortMode.SIZE), ['adir', 'zdir', 'A.md', 'b.txt', 'c.py', 'a.md'])

    def test_extension_then_name(self):
        self.assertEqual(self.names(SortMode.EXTENSION), ['adir', 'zdir', 'A.md', 'a.md', 'c.py', 'b.txt'])

    def test_sort_mode_from_key(self):
        self.assertEqual(SortMode.from_key('n'), SortMode.NAME)
        self.assertEqual(SortMode.from_key('m'), SortMode.MODTIME)
        self.assertEqual(SortMode.from_key('s'), SortMode.SIZE)
        self.assertEqual(SortMode.from_key('e'), SortMode.EXTENSION)
        self.assertIsNone(SortMode.from_key('x'))


class FormattingTests(unittest.TestCase):
    def test_format_size(self):
        self.assertEqual(format_size(500), '500.0 B')
        self.assertEqual(format_size(1024), '1.0 KB')
        self.assertEqual(format_size(1024 * 1024), '1.0 MB')
        self.assertEqual(format_size(1024 * 1024 * 1024), '1.0 GB')
        self.assertEqual(format_size(5 * 1024 ** 4), '5120.0 GB')

    def test_fit_text_to_cells_pads_and_clips(self):
        self.assertEqual(fit_text_to_cells('abc', 5), 'abc  ')
        self.assertEqual(fit_text_to_cells('abcdef', 3), 'abc')
        self.assertEqual(fit_text_to_cells('漢字', 3), '漢 ')
        self.assertEqual(fit_text_to_cells('x', 0), '')


if __name__ == '__main__':
    unittest.main()

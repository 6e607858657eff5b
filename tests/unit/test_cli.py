"""
Unit tests for the command line interface.

Drives ``main`` with injected input and print functions.
"""

import os
import shutil
import tempfile
from pathlib import Path

import pytest
import yaml

from guessfs.cli import build_parser, main, options_from_args


class ScriptedInput:
    """Feeds prepared answers to the game loop."""

    def __init__(self, answers):
        self.answers = list(answers)
        self.prompts = []

    def __call__(self, prompt):
        self.prompts.append(prompt)
        if not self.answers:
            raise EOFError
        return self.answers.pop(0)


class TestIndexCommand:
    """Test cases for ``guessfs index``."""

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()
        self.root = Path(self.temp_dir).resolve() / "tree"
        for relative, content in {
            "docs/a.txt": "a",
            "docs/b.md": "b",
            "docs/empty.txt": "",
            ".git/config": "x",
        }.items():
            path = self.root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)
        self.output = []

    def teardown_method(self):
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def test_options_from_args(self):
        args = build_parser().parse_args([
            "index", "--path", str(self.root), "--index", "files,dirs",
            "--types", "txt,md", "--exclude", "hidden,privileged",
            "--exclude-paths", "docs/old, build", "--exclude-files", "Thumbs.db",
        ])
        options = options_from_args(args)

        assert options.index_files is True
        assert options.index_directories is True
        assert options.file_types == [".txt", ".md"]
        assert options.exclude_hidden is True
        assert options.exclude_admin is True
        assert options.exclude_empty is False
        assert options.excluded_paths == ["docs/old", "build"]
        assert options.excluded_files == ["Thumbs.db"]

    def test_index_summary(self):
        code = main(
            ["index", "--path", str(self.root), "--index", "files", "--exclude", "hidden,empty"],
            print_fn=self.output.append,
        )

        assert code == 0
        assert self.output[0].startswith("Indexed 0 directories and 2 files")
        assert "Excluded counts: exclude_empty: 1, exclude_hidden: 1, index_type: 1" in self.output

    def test_index_save(self):
        data_dir = Path(self.temp_dir) / "data"
        code = main(
            ["index", "--path", str(self.root), "--index", "dirs", "--save", "--data-dir", str(data_dir)],
            print_fn=self.output.append,
        )

        assert code == 0
        assert self.output[-1].startswith("Saved index snapshot to")
        assert len(list(data_dir.glob("index_*.json"))) == 1

    def test_invalid_index_kind(self, capsys):
        code = main(["index", "--path", str(self.root), "--index", "links"], print_fn=self.output.append)

        assert code == 1
        assert "Unknown --index value(s): links" in capsys.readouterr().err

    def test_missing_root(self, capsys):
        code = main(["index", "--path", str(self.root / "gone"), "--index", "files"])

        assert code == 1
        assert "does not exist" in capsys.readouterr().err

    def test_requires_subcommand(self):
        with pytest.raises(SystemExit):
            main([])


class TestPlayCommand:
    """Test cases for ``guessfs play``."""

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()
        self.base = Path(self.temp_dir).resolve()
        self.root = self.base / "tree"
        (self.root / "docs").mkdir(parents=True)
        (self.root / "docs" / "only.txt").write_text("the answer")

        self.config_path = self.base / "guessfs.yaml"
        self.config_path.write_text(yaml.dump({
            'index': {'path': str(self.root)},
            'game': {'type': 'file', 'difficulty': 'custom', 'close_sensitivity': 90},
            'custom': {'hint_count': 2, 'time_limit': 0, 'total_levels': 1},
            'indexer': {'max_workers': 1, 'data_dir': str(self.base / "data")},
        }))
        self.output = []

    def teardown_method(self):
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def _play(self, answers, *extra):
        argv = ["play", "--config", str(self.config_path), "--seed", "1", *extra]
        return main(argv, input_fn=ScriptedInput(answers), print_fn=self.output.append)

    def test_win(self):
        code = self._play(["docs/onl.txt", "docs/only.txt"])

        assert code == 0
        assert "Close!" in self.output
        assert "Correct!" in self.output
        assert "Correct: 1 | Close: 1 | Incorrect: 0" in self.output
        assert any(line.startswith("Levels: 1 | Hints used: 0") for line in self.output)

    def test_commands_and_quit(self):
        code = self._play([":time", ":hint", ":hint", ":hint", "nowhere/else.bin", ":quit"])

        assert code == 0
        assert "No time limit." in self.output
        assert "Hint 1: docs/******** (1 left)" in self.output
        assert "Hint 2: docs/o******* (0 left)" in self.output
        assert "No hints left for this level." in self.output
        assert "Incorrect." in self.output
        assert "Game abandoned." in self.output
        assert "Correct: 0 | Close: 0 | Incorrect: 2" in self.output

    def test_end_of_input_abandons(self):
        code = self._play([])

        assert code == 0
        assert "Game abandoned." in self.output

    def test_uses_saved_snapshot(self):
        main(
            ["index", "--path", str(self.root), "--index", "files", "--save",
             "--data-dir", str(self.base / "data")],
            print_fn=self.output.append,
        )
        self._play(["docs/only.txt"], "--use-snapshot")

        assert any(line.startswith("Using saved index for") for line in self.output)
        assert "Correct!" in self.output

    def test_snapshot_with_other_options_is_rebuilt(self):
        main(
            ["index", "--path", str(self.root), "--index", "files", "--exclude", "hidden", "--save",
             "--data-dir", str(self.base / "data")],
            print_fn=self.output.append,
        )
        self._play(["docs/only.txt"], "--use-snapshot")

        assert "Saved index was built with different options, indexing now" in self.output
        assert not any(line.startswith("Using saved index for") for line in self.output)
        assert "Correct!" in self.output

    def test_not_enough_entries(self, capsys):
        code = self._play([], "--difficulty", "hard")

        assert code == 1
        assert "eligible entries" in capsys.readouterr().err

    def test_missing_config(self, capsys):
        code = main(["play", "--config", str(self.base / "missing.yaml")])

        assert code == 1
        assert "Configuration file not found" in capsys.readouterr().err

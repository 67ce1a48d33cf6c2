"""Tests for untracked-file diffs: caps, placeholders, per-file failures."""

import asyncio
from pathlib import Path

from conftest import ScriptedRunner, exit_code
from gitreview.git.untracked import (
    NULL_PATH,
    UntrackedDiffer,
    binary_placeholder,
    large_file_placeholder,
)


def _diff_args(rel: str):
    return ["diff", "--no-index", "--", NULL_PATH, rel]


def _numstat_args(rel: str):
    return ["diff", "--no-index", "--numstat", "--", NULL_PATH, rel]


def _patch(rel: str) -> str:
    return (
        f"diff --git a/{rel} b/{rel}\n"
        "new file mode 100644\n"
        "--- /dev/null\n"
        f"+++ b/{rel}\n"
        "@@ -0,0 +1 @@\n"
        "+hello\n"
    )


class TestPlaceholders:
    def test_binary_placeholder_block(self):
        block = binary_placeholder("img/logo.png")
        assert block.startswith("diff --git a/img/logo.png b/img/logo.png\n")
        assert "new file mode 100644" in block
        assert "+++ b/img/logo.png" in block
        assert "+Binary file (content not shown)" in block
        assert block.endswith("\\ No newline at end of file")

    def test_large_file_placeholder_reports_size(self):
        block = large_file_placeholder("dump.sql", 2 * 1024 * 1024)
        assert "+File too large (2.00MB) - content not shown" in block


class TestUntrackedDiffer:
    def test_text_file_diffed(self, fake_repo_root: Path):
        (fake_repo_root / "a.txt").write_text("hello\n")
        runner = ScriptedRunner().on(_diff_args("a.txt"), exit_code(1, _patch("a.txt")))
        result = asyncio.run(UntrackedDiffer(runner).diff_all(fake_repo_root, ["a.txt"]))
        assert result.diffs == [_patch("a.txt")]
        assert (result.total, result.processed, result.capped) == (1, 1, False)

    def test_binary_file_gets_placeholder(self, fake_repo_root: Path):
        (fake_repo_root / "blob.bin").write_bytes(b"\x00\x01\x02")
        runner = ScriptedRunner().on(
            _numstat_args("blob.bin"), exit_code(1, "-\t-\t/dev/null => blob.bin\n")
        )
        result = asyncio.run(UntrackedDiffer(runner).diff_all(fake_repo_root, ["blob.bin"]))
        (block,) = result.diffs
        assert "Binary file" in block
        assert "blob.bin" in block
        assert tuple(_diff_args("blob.bin")) not in runner.calls

    def test_large_file_gets_placeholder_without_git(self, fake_repo_root: Path):
        (fake_repo_root / "big.log").write_text("x" * 100)
        runner = ScriptedRunner()
        differ = UntrackedDiffer(runner, max_file_size=10)
        result = asyncio.run(differ.diff_all(fake_repo_root, ["big.log"]))
        (block,) = result.diffs
        assert "File too large" in block
        assert runner.calls == []

    def test_missing_file_skipped(self, fake_repo_root: Path):
        runner = ScriptedRunner()
        result = asyncio.run(UntrackedDiffer(runner).diff_all(fake_repo_root, ["vanished.txt"]))
        assert result.diffs == []
        assert result.processed == 1
        assert runner.calls == []

    def test_failure_skipped_but_counted(self, fake_repo_root: Path):
        (fake_repo_root / "bad.txt").write_text("x\n")
        (fake_repo_root / "good.txt").write_text("y\n")
        runner = (
            ScriptedRunner()
            .on(_diff_args("bad.txt"), exit_code(2, stderr="error: cannot read"))
            .on(_diff_args("good.txt"), exit_code(1, _patch("good.txt")))
        )
        result = asyncio.run(UntrackedDiffer(runner).diff_all(fake_repo_root, ["bad.txt", "good.txt"]))
        assert result.diffs == [_patch("good.txt")]
        assert (result.total, result.processed) == (2, 2)

    def test_escaping_path_skipped(self, fake_repo_root: Path):
        runner = ScriptedRunner()
        result = asyncio.run(UntrackedDiffer(runner).diff_all(fake_repo_root, ["../outside.txt"]))
        assert result.diffs == []
        assert runner.calls == []

    def test_count_cap(self, fake_repo_root: Path):
        names = [f"f{i:02d}.txt" for i in range(60)]
        for name in names:
            (fake_repo_root / name).write_text("x\n")
        runner = ScriptedRunner()
        result = asyncio.run(UntrackedDiffer(runner, max_files=50).diff_all(fake_repo_root, names))
        assert (result.total, result.processed, result.capped) == (60, 50, True)
        assert runner.count("diff", "--no-index", "--numstat") == 50
        assert tuple(_numstat_args("f55.txt")) not in runner.calls

    def test_order_follows_listing(self, fake_repo_root: Path):
        names = ["slow.txt", "mid.txt", "fast.txt"]
        delays = {"slow.txt": 0.05, "mid.txt": 0.02, "fast.txt": 0.0}
        for name in names:
            (fake_repo_root / name).write_text("x\n")

        class DelayedRunner(ScriptedRunner):
            async def _execute(self, root, args, limit):
                rel = args[-1]
                if "--numstat" not in args:
                    await asyncio.sleep(delays[rel])
                    self.calls.append(tuple(args))
                    return exit_code(1, _patch(rel))
                return await super()._execute(root, args, limit)

        runner = DelayedRunner()
        result = asyncio.run(UntrackedDiffer(runner, workers=3).diff_all(fake_repo_root, names))
        assert result.diffs == [_patch(n) for n in names]

    def test_workers_bound_concurrency(self, fake_repo_root: Path):
        names = [f"w{i}.txt" for i in range(8)]
        for name in names:
            (fake_repo_root / name).write_text("x\n")
        state = {"active": 0, "peak": 0}

        class CountingRunner(ScriptedRunner):
            async def _execute(self, root, args, limit):
                state["active"] += 1
                state["peak"] = max(state["peak"], state["active"])
                await asyncio.sleep(0.01)
                state["active"] -= 1
                return await super()._execute(root, args, limit)

        asyncio.run(UntrackedDiffer(CountingRunner(), workers=2).diff_all(fake_repo_root, names))
        assert state["peak"] <= 2

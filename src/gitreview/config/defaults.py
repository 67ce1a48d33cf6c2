"""Starter .gitreview.toml template."""

DEFAULT_TOML = """\
# gitreview configuration
version = "1.0"

[limits]
max_buffer_bytes = 10485760        # 10 MiB of git output per command
max_untracked_file_size = 1048576  # larger untracked files get a placeholder diff
max_untracked_diffs = 50           # untracked files diffed per call
untracked_workers = 4              # concurrent git calls for untracked files
command_timeout = 30.0             # seconds per git command
default_commit_limit = 50

[git]
binary = "git"

[output]
format = "terminal"                # terminal | json

[projects]
# my-app = "/home/me/src/my-app"
"""

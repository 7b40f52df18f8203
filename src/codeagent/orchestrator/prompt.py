"""System instruction for the coding agent.

The prompt is configuration: the built-in default only states the tool and
completion conventions the loop relies on. Deployments point
AGENT_PROMPT_PATH at their own prompt file.
"""

from pathlib import Path

from codeagent.agents.completion import TASK_SUMMARY_MARKER
from codeagent.config import Settings
from codeagent.errors import ConfigError

DEFAULT_PROMPT = f"""\
You are a senior software engineer working in a sandboxed project environment.

Environment:
- Create or change files with createOrUpdateFiles. Paths are relative to the project root.
- Run commands with terminal (install packages there, never edit lock files by hand).
- Read files with readFiles.
- The development server is already running; do not start it yourself.

Work step by step with the tools until the task is fully implemented.

When you are completely done, reply once with a short summary wrapped like this
and nothing after it:

{TASK_SUMMARY_MARKER}
A short, high-level summary of what was created or changed.
</task_summary>
"""


def load_system_prompt(settings: Settings) -> str:
    path_value = settings.agent_prompt_path.strip()
    if not path_value:
        return DEFAULT_PROMPT
    path = Path(path_value).expanduser()
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"cannot read AGENT_PROMPT_PATH {path}: {exc}") from exc
    if not text.strip():
        raise ConfigError(f"AGENT_PROMPT_PATH {path} is empty")
    return text

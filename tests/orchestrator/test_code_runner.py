import asyncio
import sys

from novablick.orchestrator.tools import ToolRegistry
from novablick.orchestrator.tools.code_runner import PythonSandbox, create_run_code_tool
from novablick.orchestrator.tools.code_runner.sandbox import MATPLOTLIB_HANDLER, requires_matplotlib


def test_printed_lines_are_returned_in_order() -> None:
    sandbox = PythonSandbox(timeout_seconds=20)

    result = asyncio.run(sandbox.run("print('first')\nprint()\nprint(6 * 7)"))

    assert result.succeeded
    assert result.lines == ["first", "42"]


def test_exception_is_reported_as_error_line() -> None:
    sandbox = PythonSandbox(timeout_seconds=20)

    result = asyncio.run(sandbox.run("print('before')\nraise ValueError('bad input')"))

    assert not result.succeeded
    assert result.lines[0] == "before"
    assert result.lines[-1].startswith("error: ")
    assert "ValueError: bad input" in result.lines[-1]


def test_long_running_code_times_out() -> None:
    sandbox = PythonSandbox(timeout_seconds=0.5)

    result = asyncio.run(sandbox.run("import time\ntime.sleep(10)"))

    assert result.timed_out
    assert result.lines == ["error: execution timed out after 0.5 seconds"]


def test_missing_interpreter_is_reported() -> None:
    sandbox = PythonSandbox(python_executable="/nonexistent/python3")

    result = asyncio.run(sandbox.run("print(1)"))

    assert result.lines[0].startswith("error: could not start interpreter")


def test_plotting_code_gets_matplotlib_prelude() -> None:
    sandbox = PythonSandbox()

    assert requires_matplotlib("import matplotlib.pyplot as plt")
    assert requires_matplotlib("plt.plot([1, 2])")
    assert not requires_matplotlib("print('plot twist')")
    assert sandbox.build_script("plt.show()").startswith(MATPLOTLIB_HANDLER)
    assert sandbox.build_script("print(1)") == "print(1)"


def test_run_code_tool_wraps_output_lines() -> None:
    registry = ToolRegistry([create_run_code_tool(PythonSandbox(python_executable=sys.executable))])

    result = asyncio.run(registry.invoke("run_code", {"code": "print('hello')"}))

    assert result.success is True
    assert result.output == {"outputContent": ["hello"]}


def test_runaway_output_stops_the_process_at_the_cap() -> None:
    sandbox = PythonSandbox(timeout_seconds=20, max_output_chars=1_000)

    result = asyncio.run(sandbox.run("while True:\n    print('x' * 100)"))

    assert not result.succeeded
    assert not result.timed_out
    assert result.lines[-1] == "error: output exceeded 1000 characters; execution stopped"
    assert sum(len(line) for line in result.lines[:-1]) <= 1_000


def test_stderr_beyond_the_cap_does_not_block_the_process() -> None:
    sandbox = PythonSandbox(timeout_seconds=20, max_output_chars=1_000)

    result = asyncio.run(
        sandbox.run("import sys\nfor _ in range(2000):\n    sys.stderr.write('warn ' * 100)\nprint('done')")
    )

    assert result.succeeded
    assert result.lines == ["done"]

"""Shared fixtures: a scripted stand-in for the backend executable."""

import sys
import textwrap

import pytest


ECHO_BACKEND = textwrap.dedent('''
    import sys

    language = None
    capture = None
    lines = []

    print("backend ready", flush=True)
    for line in sys.stdin:
        line = line.rstrip("\\n")
        if capture is None:
            if line.endswith(" START"):
                capture = line[:-len(" START")]
                lines = []
            continue
        if line != capture + " END":
            lines.append(line)
            continue

        text = "\\n".join(lines)
        if capture == "SELECT_LANGUAGE":
            language = text
        elif capture == "FREECODING_QUESTION":
            if text == "crash":
                print("giving up", file=sys.stderr, flush=True)
                sys.exit(3)
            print("thinking about it...", flush=True)
            print("FREECODING_ANSWER START")
            print("[%s] %s" % (language, text))
            print("FREECODING_ANSWER END", flush=True)
            print("DOCUMENT_LOAD START")
            print("answered: %s" % text)
            print("DOCUMENT_LOAD END", flush=True)
        capture = None
''')


@pytest.fixture
def echo_backend(tmp_path):
    """Command line of a backend that answers '[<language>] <question>'"""
    script = tmp_path / "echo_backend.py"
    script.write_text(ECHO_BACKEND)
    return [sys.executable, "-u", str(script)]


@pytest.fixture
def exiting_backend(tmp_path):
    """Command line of a backend that writes to stderr and exits with code 3"""
    script = tmp_path / "exiting_backend.py"
    script.write_text('import sys\nprint("boom", file=sys.stderr, flush=True)\nsys.exit(3)\n')
    return [sys.executable, str(script)]

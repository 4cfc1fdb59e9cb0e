import io

import pytest

from tinyos.echo import echo, main


def run(argv, stdin_text=""):
    stdin = io.StringIO(stdin_text)
    stdout = io.StringIO()
    stderr = io.StringIO()
    code = echo(argv, stdin, stdout, stderr)
    return code, stdout.getvalue(), stderr.getvalue()


def test_no_arguments_echoes_stdin_line():
    code, out, err = run(["echo"], "hello\n")
    assert code == 0
    assert out == "hello\n\n"
    assert err == ""


def test_no_arguments_truncates_long_line():
    text = "x" * 300
    code, out, _ = run(["echo"], text)
    assert code == 0
    assert out == text[:127] + "\n"


def test_message_printed_once_by_default():
    code, out, _ = run(["echo", "hi"])
    assert code == 0
    assert out == "hi\n"


@pytest.mark.parametrize("argv", [["echo", "-n", "3", "msg"], ["echo", "-n3", "msg"]])
def test_count_option(argv):
    code, out, _ = run(argv)
    assert code == 0
    assert out == "msg\n" * 3


def test_non_numeric_count_prints_nothing():
    code, out, _ = run(["echo", "-n", "abc", "msg"])
    assert code == 0
    assert out == ""


def test_help_option():
    code, out, _ = run(["echo", "-h", "msg"])
    assert code == 0
    assert out.splitlines() == ["echo echo any message", "Usage: echo [-n count] msg"]


def test_missing_message_is_error():
    code, out, err = run(["echo", "-n", "2"])
    assert code == -1
    assert out == ""
    assert err == "Message is empty \n"


def test_unknown_option_is_error():
    code, out, err = run(["echo", "-x", "msg"])
    assert code == -1
    assert out == ""
    assert "Unknown option: -x" in err


def test_option_without_argument_is_error():
    code, _, err = run(["echo", "-n"])
    assert code == -1
    assert "-n" in err


def test_main_uses_process_streams(capsys):
    assert main(["-n", "2", "hi"]) == 0
    captured = capsys.readouterr()
    assert captured.out == "hi\nhi\n"
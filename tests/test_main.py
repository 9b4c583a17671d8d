# tests/test_main.py
import pytest
import sys
from keyscope.__main__ import main
from keyscope.keychain import cli


@pytest.mark.parametrize("command", ["list", "edit", "group"])
def test_main_dispatches_to_command(mocker, command):
    """'keyscope <command>' hands off to the matching command function"""
    mocker.patch.object(sys, "argv", ["keyscope", command, "1"])
    handler = mocker.Mock()
    mocker.patch.dict(cli.COMMANDS, {command: (handler, "")})

    main()
    handler.assert_called_once_with()


def test_main_rejects_unknown_command(mocker):
    mocker.patch.object(sys, "argv", ["keyscope", "explode"])
    with pytest.raises(SystemExit) as excinfo:
        main()
    assert excinfo.value.code == 2

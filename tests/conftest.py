import zipfile

import pytest

DICTIONARY_BLOB = (
    "dictionary = \n"
    "{\n"
    "    [\"DictKey_1\"] = \"Engage bandits, angels 20\",\n"
    "    [\"DictKey_ActionRadioText_2\"] = \"Anvil one-two, push channel three\",\n"
    "} -- end of dictionary\n"
).encode("utf-8")

SCRIPT_BLOB = (
    "local cs = \"Viper 1-1\"\n"
    "subtitle = \"Bandits bullseye 040 for 25, \" .. cs .. \"!\"\r\n"
    "trigger.action.outText(\"ignored\", 10)\n"
    "outText = 'Return to base, fuel state bingo'"
).encode("utf-8")


def write_miz(path, members):
    with zipfile.ZipFile(path, "w", zipfile.ZIP_DEFLATED) as archive:
        for name, data in members.items():
            archive.writestr(name, data)
    return path


@pytest.fixture
def mission_members():
    return {
        "mission": b"mission = { }",
        "l10n/DEFAULT/dictionary": DICTIONARY_BLOB,
        "l10n/DEFAULT/briefing.lua": SCRIPT_BLOB,
        "l10n/DEFAULT/image.png": b"\x89PNG\r\n",
    }


@pytest.fixture
def miz_path(tmp_path, mission_members):
    return write_miz(tmp_path / "Mission.miz", mission_members)

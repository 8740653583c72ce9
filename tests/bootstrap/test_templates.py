from pathlib import Path

import pytest

from seedling.bootstrap.templates import (
    BUILTIN_TEMPLATES_DIR,
    TemplateLocator,
    default_template_name,
)
from seedling.errors import TemplateNotFound


def make_locator(tmp_path: Path, *, home=None, extensions=()):
    return TemplateLocator(
        builtin_dir=tmp_path / "builtin",
        config_dir=tmp_path / "etc",
        home=lambda: home,
        extension_dirs=lambda: list(extensions),
    )


def write(path: Path, text="echo hi\n") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


def test_default_template_names():
    assert default_template_name("linux") == "seedling-full"
    assert default_template_name("other") == "seedling-full"
    assert default_template_name("windows") == "windows-seedling-msi"


def test_builtin_templates_ship_with_the_package():
    assert (BUILTIN_TEMPLATES_DIR / "seedling-full.j2").is_file()
    assert (BUILTIN_TEMPLATES_DIR / "windows-seedling-msi.j2").is_file()
    assert TemplateLocator().locate("seedling-full") == BUILTIN_TEMPLATES_DIR / "seedling-full.j2"


def test_existing_path_is_used_directly(tmp_path):
    tpl = write(tmp_path / "custom" / "my.j2")
    assert make_locator(tmp_path).locate(str(tpl)) == tpl.resolve()


def test_missing_path_is_not_searched(tmp_path):
    write(tmp_path / "builtin" / "my.j2")
    with pytest.raises(TemplateNotFound) as exc:
        make_locator(tmp_path).locate(str(tmp_path / "nowhere" / "my.j2"))
    assert exc.value.searched == [str(tmp_path / "nowhere" / "my.j2")]


def test_builtin_wins_over_everything(tmp_path):
    home = tmp_path / "home"
    builtin = write(tmp_path / "builtin" / "base.j2")
    write(tmp_path / "etc" / "bootstrap" / "base.j2")
    write(home / ".seedling" / "bootstrap" / "base.j2")
    assert make_locator(tmp_path, home=home).locate("base") == builtin


def test_config_dir_before_home(tmp_path):
    home = tmp_path / "home"
    in_etc = write(tmp_path / "etc" / "bootstrap" / "base.j2")
    write(home / ".seedling" / "bootstrap" / "base.j2")
    assert make_locator(tmp_path, home=home).locate("base") == in_etc


def test_home_before_extensions(tmp_path):
    home = tmp_path / "home"
    in_home = write(home / ".seedling" / "bootstrap" / "base.j2")
    write(tmp_path / "ext" / "base.j2")
    assert make_locator(tmp_path, home=home, extensions=[tmp_path / "ext"]).locate("base") == in_home


def test_extension_dirs_searched_last(tmp_path):
    ext = write(tmp_path / "ext2" / "base.j2")
    locator = make_locator(tmp_path, extensions=[tmp_path / "ext1", tmp_path / "ext2"])
    assert locator.locate("base") == ext


def test_no_home_skips_home_candidate(tmp_path):
    locator = make_locator(tmp_path, home=None)
    candidates = [str(c) for c in locator.candidates("base")]
    assert not any(".seedling" in c for c in candidates)
    assert candidates == [
        str(tmp_path / "builtin" / "base.j2"),
        str(tmp_path / "etc" / "bootstrap" / "base.j2"),
    ]


def test_not_found_lists_searched_locations(tmp_path):
    home = tmp_path / "home"
    with pytest.raises(TemplateNotFound) as exc:
        make_locator(tmp_path, home=home, extensions=[tmp_path / "ext"]).locate("base")
    assert exc.value.searched == [
        str(tmp_path / "builtin" / "base.j2"),
        str(tmp_path / "etc" / "bootstrap" / "base.j2"),
        str(home / ".seedling" / "bootstrap" / "base.j2"),
        str(tmp_path / "ext" / "base.j2"),
    ]
    assert "base" in str(exc.value)


def test_candidates_are_lazy(tmp_path):
    calls = []

    def extensions():
        calls.append("ext")
        return [tmp_path / "ext"]

    write(tmp_path / "builtin" / "base.j2")
    locator = TemplateLocator(builtin_dir=tmp_path / "builtin", home=lambda: None, extension_dirs=extensions)
    locator.locate("base")
    assert calls == []

from repofilter.helptext import (
    HelpOption,
    HelpSection,
    base_help_sections,
    debug_help_sections,
    format_help_option,
    format_help_section,
    misc_help_section,
    print_help,
    render_help,
)


def test_option_without_description_is_indented_name_only():
    assert format_help_option(HelpOption("--quiet", []), 30) == "  --quiet"


def test_option_with_empty_name_renders_description_lines():
    option = HelpOption("", ["first line", "second line"])
    assert format_help_option(option, 30) == "  first line\n  second line\n"


def test_option_description_starts_at_alignment_column():
    option = HelpOption("--x", ["alpha", "beta"])
    text = format_help_option(option, 20)
    lines = text.splitlines()
    assert len(lines) == 2
    assert lines[0].startswith("  --x ")
    assert lines[0].index("alpha") == 2 + 20
    assert lines[1].index("beta") == 2 + 20
    assert lines[1].strip() == "beta"


def test_section_without_options_is_title_only():
    assert format_help_section(HelpSection("Empty:", [])) == "Empty:\n"


def test_section_uses_minimum_alignment_for_short_names():
    section = HelpSection("T:", [HelpOption("-a", ["one"]), HelpOption("-bb", ["two"])])
    text = format_help_section(section)
    assert text.startswith("T:\n")
    assert text.endswith("\n\n")
    body = text.splitlines()[1:3]
    assert [line.index(word) for line, word in zip(body, ["one", "two"])] == [27, 27]


def test_section_aligns_past_longest_name():
    long_name = "--" + "z" * 40
    section = HelpSection("T:", [HelpOption(long_name, ["desc"]), HelpOption("-a", ["other"])])
    lines = format_help_section(section).splitlines()
    col_first = lines[1].index("desc")
    col_second = lines[2].index("other")
    assert col_first == col_second
    assert col_first == 2 + len(long_name) + 2


def test_every_base_section_has_options():
    sections = base_help_sections()
    assert sections
    assert all(section.options for section in sections)
    assert all(section.title.endswith(":") for section in sections)


def test_debug_sections_mention_gate():
    for section in debug_help_sections():
        assert "--debug-mode" in section.title


def test_misc_section_lists_help():
    names = [option.name for option in misc_help_section().options]
    assert "-h, --help" in names
    assert "--config FILE" in names


def test_render_help_hides_debug_flags_by_default():
    text = render_help(False)
    assert "--date-order" not in text
    assert "--fe_stream_override" not in text
    assert "--max-blob-size BYTES" in text


def test_render_help_includes_debug_flags_in_debug_mode():
    plain = render_help(False)
    debug = render_help(True)
    assert "--date-order" in debug
    assert "--cleanup-aggressive" in debug
    assert len(debug) > len(plain)


def test_render_help_ends_with_misc_section():
    text = render_help(True)
    assert text.index("Misc:") > text.index("Debug / stream overrides")
    assert text.index("Repository & ref selection:") < text.index("Misc:")


def test_print_help_writes_render(capsys):
    print_help(True)
    assert capsys.readouterr().out == render_help(True)
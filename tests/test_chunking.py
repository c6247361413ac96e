from ragsync.ingestion.chunking import (
    MAX_SECTION_CHARS,
    WINDOW_OVERLAP,
    WINDOW_SIZE,
    chunk_text,
    looks_structured,
)


def test_fixed_windows_overlap():
    text = "".join(chr(ord("a") + i % 26) for i in range(1000))

    chunks = chunk_text(text, False)

    assert chunks == [text[0:800], text[700:1000]]


def test_short_unstructured_text_is_one_chunk():
    assert chunk_text("  just a short note about the build  ") == [
        "just a short note about the build"
    ]


def test_windows_cover_every_character():
    text = "x" * 123 + "y" * 2000 + "z" * 77
    chunks = chunk_text(text)

    step = WINDOW_SIZE - WINDOW_OVERLAP
    rebuilt = chunks[0] + "".join(chunk[WINDOW_OVERLAP:] for chunk in chunks[1:])
    assert rebuilt == text
    assert all(len(chunk) <= WINDOW_SIZE for chunk in chunks)
    assert len(chunks) == -(-(len(text) - WINDOW_OVERLAP) // step)


def test_exact_window_length_has_no_overlap_only_tail():
    text = "q" * WINDOW_SIZE
    assert chunk_text(text) == [text]


def test_heading_split():
    body_a = "Alpha section explains how the installer works."
    body_b = "Beta section covers the release checklist."
    text = f"# Title\n\n## A\n{body_a}\n\n## B\n{body_b}"

    chunks = chunk_text(text, True)

    assert len(chunks) == 2
    assert chunks[0].startswith("## A")
    assert chunks[1].startswith("## B")
    assert body_a in chunks[0]
    assert body_b in chunks[1]


def test_tiny_sections_are_dropped():
    text = "## A\nok\n\n### B\nThis section is long enough to be kept."

    assert chunk_text(text, True) == ["### B\nThis section is long enough to be kept."]


def test_oversized_section_falls_back_to_windows():
    section = "## Big\n" + "w" * 2000
    chunks = chunk_text(section, True)

    assert len(chunks) > 1
    assert chunks[0] == section[:WINDOW_SIZE]


def test_structured_fallback_never_empty():
    text = "## a\nb\n## c\nd"
    chunks = chunk_text(text, True)

    assert chunks == [text[:MAX_SECTION_CHARS]]


def test_blank_text_yields_nothing():
    assert chunk_text("", True) == []
    assert chunk_text("   \n\t ") == []


def test_chunking_is_deterministic():
    text = "## One\n" + "lorem ipsum " * 200 + "\n## Two\n" + "dolor sit " * 50
    assert chunk_text(text, True) == chunk_text(text, True)
    assert chunk_text(text) == chunk_text(text)


def test_looks_structured():
    assert looks_structured("intro\n## Setup\nsteps")
    assert looks_structured("### Notes\nx")
    assert not looks_structured("# Only a title\nbody")
    assert not looks_structured("#### too deep\nbody")
    assert not looks_structured("")

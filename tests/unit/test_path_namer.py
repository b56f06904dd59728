import pytest
from datetime import datetime
from apps.media.services.path_namer import PathNamer, clean_file_name, random_string, slugify


def fixed_now():
    return datetime(2024, 1, 15, 10, 30)


def exists_in(taken):
    async def probe(path):
        return path in taken
    return probe


def test_random_string_is_alphanumeric():
    value = random_string(16)
    assert len(value) == 16
    assert value.isalnum()


def test_slugify_strips_accents_and_symbols():
    assert slugify("Café Menu!") == "cafe-menu"
    assert slugify("me@home") == "me-at-home"
    assert slugify("  --Already__Spaced--  ") == "already-spaced"


def test_clean_file_name_keeps_extension():
    assert clean_file_name("My Holiday Photo.JPG") == "my-holiday-photo.JPG"
    assert clean_file_name("dir/sub/cat.png") == "cat.png"
    assert clean_file_name("C:\\Users\\me\\cat.png") == "cat.png"


def test_clean_file_name_without_dot_has_no_extension():
    assert clean_file_name("README") == "readme"


def test_clean_file_name_empty_stem_is_random():
    name = clean_file_name("!!!.png")
    stem, extension = name.split(".")
    assert extension == "png"
    assert len(stem) == 10
    assert stem.isalnum()


def test_directory_uses_type_and_month():
    namer = PathNamer(now=fixed_now)
    assert namer.directory_for("gallery") == "uploads/images/gallery/2024-01"


@pytest.mark.asyncio
async def test_new_path_when_free():
    namer = PathNamer(now=fixed_now)
    path = await namer.new_source_path("cat.png", "gallery", exists_in(set()))
    assert path == "uploads/images/gallery/2024-01/cat.png"


@pytest.mark.asyncio
async def test_collision_prepends_random_characters():
    namer = PathNamer(now=fixed_now)
    taken = {"uploads/images/gallery/2024-01/cat.png"}

    path = await namer.new_source_path("cat.png", "gallery", exists_in(taken))

    assert path not in taken
    directory, file_name = path.rsplit("/", 1)
    assert directory == "uploads/images/gallery/2024-01"
    assert file_name.endswith("cat.png")
    assert len(file_name) == len("cat.png") + 3


@pytest.mark.asyncio
async def test_collision_loop_probes_until_free():
    namer = PathNamer(now=fixed_now)
    calls = []

    async def probe(path):
        calls.append(path)
        return len(calls) < 3

    path = await namer.new_source_path("cat.png", "drawio", probe)

    assert len(calls) == 3
    assert path == calls[-1]
    assert len(path.rsplit("/", 1)[1]) == len("cat.png") + 6


@pytest.mark.asyncio
async def test_secure_uploads_prefix_token():
    namer = PathNamer(secure_uploads=True, now=fixed_now)
    path = await namer.new_source_path("cat.png", "gallery", exists_in(set()))

    file_name = path.rsplit("/", 1)[1]
    token, rest = file_name.split("-", 1)
    assert len(token) == 16
    assert token.isalnum()
    assert rest == "cat.png"

"""
Image injection - replaces placeholder text runs with embedded pictures.

Each image needs three coordinated edits: a relationship in
``word/_rels/document.xml.rels``, a content-type override in
``[Content_Types].xml`` and a VML picture in the main part referencing the
relationship id. :class:`ImageInjector` builds all of them up front so the
caller can commit them together.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Sequence, Set, Union

from lxml import etree
from PIL import Image, UnidentifiedImageError

from ..engine.macros import ensure_macro_completed
from ..exceptions import MalformedTemplateError, TemplateIOError

logger = logging.getLogger(__name__)

RELATIONSHIPS_PART_NAME = 'word/_rels/document.xml.rels'
CONTENT_TYPES_PART_NAME = '[Content_Types].xml'
MEDIA_FOLDER = 'word/media/'

OPC_NS = "http://schemas.openxmlformats.org/package/2006/relationships"
IMAGE_REL_TYPE = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/image"

RELATIONSHIP_TEMPLATE = '<Relationship Id="{rid}" Type="' + IMAGE_REL_TYPE + '" Target="media/{name}"/>'
OVERRIDE_TEMPLATE = '<Override PartName="/word/media/{name}" ContentType="image/{ext}"/>'
PICTURE_TEMPLATE = (
    '<w:pict><v:shape type="#_x0000_t75" style="width:{width}px;height:{height}px">'
    '<v:imagedata r:id="{rid}" o:title=""/></v:shape></w:pict>'
)

SCALE_NUMERATOR = 2
SCALE_DENOMINATOR = 3

_EXTENSION_ALIASES = {'jpg': 'jpeg', 'tif': 'tiff'}


@dataclass(frozen=True)
class ImageAsset:
    """One image ready for injection."""
    source: Path
    rel_id: str
    media_name: str
    extension: str
    width: int
    height: int

    @property
    def entry_name(self) -> str:
        return MEDIA_FOLDER + self.media_name

    def relationship_xml(self) -> str:
        return RELATIONSHIP_TEMPLATE.format(rid=self.rel_id, name=self.media_name)

    def override_xml(self) -> str:
        return OVERRIDE_TEMPLATE.format(name=self.media_name, ext=self.extension)

    def picture_xml(self) -> str:
        return PICTURE_TEMPLATE.format(width=self.width, height=self.height, rid=self.rel_id)


def image_extension(path: Union[str, Path]) -> str:
    """Return the MIME subtype for ``path`` (``jpg`` becomes ``jpeg``)."""
    extension = Path(path).suffix.lstrip('.').lower()
    return _EXTENSION_ALIASES.get(extension, extension)


def probe_image_size(path: Union[str, Path]) -> tuple:
    """
    Read pixel dimensions of an image.

    Raises:
        TemplateIOError: if the file is missing or not an image
    """
    try:
        with Image.open(path) as image:
            return image.size
    except (OSError, UnidentifiedImageError) as e:
        raise TemplateIOError("Could not read image", f"{path}: {e}") from e


def existing_relationship_ids(relationships_xml: str) -> Set[str]:
    if not relationships_xml:
        return set()
    try:
        root = etree.fromstring(relationships_xml.encode('utf-8'))
    except etree.XMLSyntaxError as e:
        raise MalformedTemplateError("Could not parse relationships part", str(e)) from e
    return {rel.get('Id', '') for rel in root.iterfind(f'{{{OPC_NS}}}Relationship')}


def insert_before_closing_tag(xml: str, closing_tag: str, fragment: str) -> str:
    """
    Insert ``fragment`` right before the last ``closing_tag`` in ``xml``.

    Raises:
        MalformedTemplateError: if ``closing_tag`` is absent
    """
    position = xml.rfind(closing_tag)
    if position < 0:
        raise MalformedTemplateError("Closing tag not found", closing_tag)
    return xml[:position] + fragment + xml[position:]


def media_stem(index: int) -> str:
    """Entry name prefix shared by every extension of generated image ``index``."""
    return f"{MEDIA_FOLDER}img{index}."


def text_run_pattern(search: str) -> re.Pattern:
    """Pattern for a ``<w:t>`` element holding exactly the macro ``search``."""
    macro = ensure_macro_completed(search)
    return re.compile(r'<w:t(?:\s[^>]*)?>' + re.escape(macro) + r'</w:t>')


class ImageInjector:
    """
    Allocates relationship ids and builds image assets.

    The counter starts after the relationships found at load time and moves by
    one per injected image; ids already present in the part are skipped.
    """

    def __init__(self, relationships_xml: str):
        self._used_ids = existing_relationship_ids(relationships_xml)
        self.next_index = len(self._used_ids) + 1

    def plan(self, image_paths: Sequence[Union[str, Path]],
             existing_entries: Iterable[str] = ()) -> List[ImageAsset]:
        """
        Build assets for ``image_paths`` without changing the counter.

        Indices whose id is taken, or whose ``word/media/img{n}.*`` entry is
        among ``existing_entries``, are skipped.

        Raises:
            TemplateIOError: if an image cannot be read
        """
        taken_stems = {name.rsplit('.', 1)[0] + '.' for name in existing_entries if name.startswith(MEDIA_FOLDER)}
        assets = []
        index = self.next_index
        for image_path in image_paths:
            width, height = probe_image_size(image_path)
            extension = image_extension(image_path)
            while f"rId{index}" in self._used_ids or media_stem(index) in taken_stems:
                index += 1
            assets.append(ImageAsset(
                source=Path(image_path),
                rel_id=f"rId{index}",
                media_name=f"img{index}.{extension}",
                extension=extension,
                width=int(width * SCALE_NUMERATOR / SCALE_DENOMINATOR),
                height=int(height * SCALE_NUMERATOR / SCALE_DENOMINATOR),
            ))
            index += 1
        return assets

    def commit(self, assets: Iterable[ImageAsset]) -> None:
        """Mark the ids of ``assets`` as used and advance the counter past them."""
        for asset in assets:
            self._used_ids.add(asset.rel_id)
            self.next_index = max(self.next_index, int(asset.rel_id[3:]) + 1)


def apply_assets(main_part: str, relationships_xml: str, content_types_xml: str,
                 searches: Sequence[str], assets: Sequence[ImageAsset]) -> tuple:
    """
    Return the new (main part, relationships, content types) for ``assets``.

    ``searches[i]`` is replaced with the picture of ``assets[i]``. A macro listed
    once is replaced everywhere; a macro listed several times gives its
    occurrences to the listed images in document order.
    """
    keys = [ensure_macro_completed(search) for search in searches]
    for key, asset in zip(keys, assets):
        picture = asset.picture_xml()
        count = 1 if keys.count(key) > 1 else 0
        main_part = text_run_pattern(key).sub(lambda _match, value=picture: value, main_part, count=count)

    relationships_xml = insert_before_closing_tag(
        relationships_xml, '</Relationships>', ''.join(a.relationship_xml() for a in assets))
    content_types_xml = insert_before_closing_tag(
        content_types_xml, '</Types>', ''.join(a.override_xml() for a in assets))
    return main_part, relationships_xml, content_types_xml

"""Decoders for the ALAS repository metadata and updateinfo documents.

repomd.xml lists the repository's data files::

    <repomd xmlns="http://linux.duke.edu/metadata/repo">
      <data type="updateinfo">
        <checksum type="sha256">...</checksum>
        <location href="repodata/updateinfo.xml.gz"/>
      </data>
    </repomd>

updateinfo.xml holds one <update> per advisory::

    <updates>
      <update type="security">
        <id>ALAS-2023-1234</id>
        <issued date="2023-01-05 18:31"/>
        <severity>important</severity>
        <description>...</description>
        <references><reference href="..." id="CVE-..." type="cve"/></references>
        <pkglist><collection>
          <package name="curl" version="7.61.1" release="12.amzn2" .../>
        </collection></pkglist>
      </update>
    </updates>
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import BinaryIO
from xml.etree import ElementTree

UPDATE_INFO = "updateinfo"


def _local(tag: str) -> str:
    """Strip an ``{namespace}`` prefix from an element tag."""
    return tag.rsplit("}", 1)[-1]


def _child(elem: ElementTree.Element, name: str) -> ElementTree.Element | None:
    for child in elem:
        if _local(child.tag) == name:
            return child
    return None


def _text(elem: ElementTree.Element, name: str) -> str:
    child = _child(elem, name)
    if child is None or child.text is None:
        return ""
    return child.text.strip()


@dataclass(frozen=True)
class RepoData:
    type: str
    checksum: str
    checksum_type: str
    location: str


def parse_repomd(data: bytes) -> dict[str, RepoData]:
    """Decode repomd.xml into its data entries keyed by type.

    Raises xml.etree.ElementTree.ParseError on malformed input.
    """
    root = ElementTree.fromstring(data)
    out: dict[str, RepoData] = {}
    for elem in root:
        if _local(elem.tag) != "data":
            continue
        checksum = _child(elem, "checksum")
        location = _child(elem, "location")
        entry = RepoData(
            type=elem.get("type", ""),
            checksum=(checksum.text or "").strip() if checksum is not None else "",
            checksum_type=checksum.get("type", "") if checksum is not None else "",
            location=location.get("href", "") if location is not None else "",
        )
        out[entry.type] = entry
    return out


@dataclass(frozen=True)
class AlasPackage:
    name: str
    version: str
    release: str
    epoch: str = ""
    arch: str = ""


@dataclass(frozen=True)
class AlasUpdate:
    id: str
    title: str
    issued: str
    severity: str
    description: str
    references: tuple[str, ...]
    packages: tuple[AlasPackage, ...]


def _decode_update(elem: ElementTree.Element) -> AlasUpdate:
    issued = _child(elem, "issued")
    refs: list[str] = []
    references = _child(elem, "references")
    if references is not None:
        refs = [r.get("href", "") for r in references if _local(r.tag) == "reference"]
    packages: list[AlasPackage] = []
    pkglist = _child(elem, "pkglist")
    if pkglist is not None:
        for collection in pkglist:
            for pkg in collection:
                if _local(pkg.tag) != "package":
                    continue
                packages.append(
                    AlasPackage(
                        name=pkg.get("name", ""),
                        version=pkg.get("version", ""),
                        release=pkg.get("release", ""),
                        epoch=pkg.get("epoch", ""),
                        arch=pkg.get("arch", ""),
                    )
                )
    return AlasUpdate(
        id=_text(elem, "id"),
        title=_text(elem, "title"),
        issued=issued.get("date", "") if issued is not None else "",
        severity=_text(elem, "severity"),
        description=_text(elem, "description"),
        references=tuple(refs),
        packages=tuple(packages),
    )


def iter_updates(contents: BinaryIO) -> Iterator[AlasUpdate]:
    """Yield advisories one at a time as the document is read.

    Advisories before a syntax error are yielded before the
    xml.etree.ElementTree.ParseError propagates.
    """
    for _event, elem in ElementTree.iterparse(contents, events=("end",)):
        if _local(elem.tag) == "update":
            yield _decode_update(elem)
            elem.clear()

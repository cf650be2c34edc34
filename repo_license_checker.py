#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
GitHub Repository License Checker

Prüft für ein einzelnes GitHub-Repository (owner/repo):
- Lizenz (SPDX-ID), letzte Release-Version und Default-Branch
- optional, ob eine bestimmte Version als Tag existiert
- Abhängigkeiten pro Ecosystem und deren Lizenzen
- eingebettete Lizenzdateien (LICENSE, COPYING, NOTICE, ...) im Repository-Baum

Unterstützte Ecosystems:
- JavaScript/npm: package.json (Lizenzen via npm Registry)
- Python: requirements.txt (Lizenzen via PyPI)
- Scala: build.sbt (nur Namen, Lizenzprüfung manuell)
- Java (Maven): pom.xml (nur Namen, Lizenzprüfung manuell)

Optional:
- GITHUB_TOKEN oder GH_TOKEN (höheres Rate-Limit, private Repositories)
- openpyxl (für Excel-Export via --out)

Ausgabe: Textzeilen auf stdout, optional CSV/Excel-Export
"""

import argparse
import csv
import dataclasses
import json
import os
import re
import sys
import time
import xml.etree.ElementTree as ET
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, Iterable, List, Optional, Tuple
from urllib.parse import quote

import requests

try:
    from openpyxl import Workbook
except ImportError:
    Workbook = None  # type: ignore


# Konstanten
GITHUB_API = os.getenv("GITHUB_API_URL", "https://api.github.com").rstrip("/")
RAW_BASE = os.getenv("GITHUB_RAW_URL", "https://raw.githubusercontent.com").rstrip("/")
NPM_REGISTRY = os.getenv("NPM_REGISTRY_URL", "https://registry.npmjs.org").rstrip("/")
PYPI_BASE = os.getenv("PYPI_URL", "https://pypi.org").rstrip("/")

GITHUB_API_PAGE_SIZE = 100
HTTP_TIMEOUT_SECONDS = 30
DEFAULT_WORKERS = 8
FALLBACK_REF = "HEAD"

EXCEL_MAX_COLUMN_WIDTH = 80
EXCEL_COLUMN_PADDING = 2

# Broad match on purpose: vendor/LICENSE-MIT or docs/NOTICE.md are hits too
EMBEDDED_LICENSE_RE = re.compile(r"LICENSE|COPYING|NOTICE|LICENSE.txt|NOTICE.txt")

REPO_ARG_RE = re.compile(r"^([A-Za-z0-9_.\-]+)/([A-Za-z0-9_.\-]+)$")


SESSION = requests.Session()
SESSION.headers.update({
    "User-Agent": "repo-license-checker/1.0",
})

GITHUB_HEADERS = {"Accept": "application/vnd.github+json"}
REGISTRY_HEADERS = {"Accept": "application/json"}


# Fehler

class AuditError(Exception):
    """Basisklasse für alle Fehler beim Prüfen eines Repositories."""


class NotFound(AuditError):
    """Remote-Objekt existiert nicht (HTTP 404)."""


class RepositoryNotFound(AuditError):
    """Repository existiert nicht. Bricht den gesamten Lauf ab."""


class TransportError(AuditError):
    """Netzwerkfehler, unerwarteter HTTP-Status oder kaputtes JSON."""


class UsageError(AuditError):
    """Ungültige Kommandozeilenargumente."""


# Datenmodell

@dataclasses.dataclass(frozen=True)
class RepositoryRef:
    """owner/repo, einmal geparst und für alle URLs verwendet."""
    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @classmethod
    def parse(cls, text: str) -> "RepositoryRef":
        m = REPO_ARG_RE.match(text.strip())
        if not m or m.group(1) in (".", "..") or m.group(2) in (".", ".."):
            raise UsageError(f"expected <owner/repo>, got '{text}'")
        return cls(m.group(1), m.group(2))


@dataclasses.dataclass(frozen=True)
class LicenseInfo:
    spdx_id: Optional[str]


@dataclasses.dataclass(frozen=True)
class ReleaseInfo:
    tag_name: Optional[str]


@dataclasses.dataclass(frozen=True)
class DependencyRecord:
    name: str
    ecosystem: str      # "node" | "python" | "scala" | "java"
    license: Optional[str] = None
    error: str = ""     # transport failure of the registry lookup


@dataclasses.dataclass(frozen=True)
class EmbeddedLicenseFile:
    path: str
    contents: str


@dataclasses.dataclass(frozen=True)
class ExportRow:
    """Eine Zeile im CSV/Excel-Export."""
    repo: str
    ref: str
    kind: str           # "license" | "release" | "branch" | "dependency" | "embedded"
    ecosystem: str = ""
    name: str = ""
    license: str = ""
    path: str = ""


# HTTP Helpers

def _github_headers() -> Dict[str, str]:
    """GitHub-Header, mit Authorization falls GITHUB_TOKEN/GH_TOKEN gesetzt ist."""
    headers = dict(GITHUB_HEADERS)
    token = os.getenv("GITHUB_TOKEN") or os.getenv("GH_TOKEN")
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def _request(url: str, params: Optional[dict] = None,
             headers: Optional[Dict[str, str]] = None) -> requests.Response:
    """
    GET mit Status-Auswertung.
    404 -> NotFound, alles andere außer 2xx -> TransportError.
    Kein Retry, auch nicht bei Rate-Limiting.
    """
    try:
        r = SESSION.get(url, params=params, headers=headers, timeout=HTTP_TIMEOUT_SECONDS)
    except requests.RequestException as e:
        raise TransportError(f"{url}: {e}") from e

    if r.status_code == 404:
        raise NotFound(url)

    if r.status_code in (403, 429) and "rate limit" in r.text.lower():
        reset = r.headers.get("X-RateLimit-Reset")
        if reset and reset.isdigit():
            wait = max(0, int(reset) - int(time.time()))
            raise TransportError(f"{url}: rate limit exceeded (resets in {wait}s)")
        raise TransportError(f"{url}: rate limit exceeded")

    if not 200 <= r.status_code < 300:
        raise TransportError(f"{url}: HTTP {r.status_code}")

    return r


def get_json(url: str, params: Optional[dict] = None,
             headers: Optional[Dict[str, str]] = None):
    """GET und JSON-Body parsen. Ungültiges JSON ist ein TransportError."""
    r = _request(url, params=params, headers=headers)
    try:
        return r.json()
    except ValueError as e:
        raise TransportError(f"{url}: invalid JSON response: {e}") from e


def get_text(url: str, headers: Optional[Dict[str, str]] = None) -> str:
    """GET und Body als Text zurückgeben."""
    return _request(url, headers=headers).text


def paginate(url: str, params: Optional[dict] = None) -> Iterable[dict]:
    """
    Paginiert durch GitHub API Responses.
    Folgt dem Link-Header (rel="next") bis zur letzten Seite.
    """
    # Create mutable copy to avoid modifying caller's dict
    params = dict(params or {})
    params.setdefault("per_page", GITHUB_API_PAGE_SIZE)

    while url:
        r = _request(url, params=params, headers=_github_headers())
        try:
            data = r.json()
        except ValueError as e:
            raise TransportError(f"{url}: invalid JSON response: {e}") from e

        if isinstance(data, list):
            yield from data
        else:
            yield data

        # Parse Link header for next page
        link = r.headers.get("Link", "")
        next_url = None
        if link:
            for part in link.split(","):
                m = re.search(r'<([^>]+)>; rel="next"', part)
                if m:
                    next_url = m.group(1)
                    break

        url = next_url
        params = None


def _fan_out(func: Callable, items: List, workers: int) -> List:
    """
    Wendet func auf alle items an, bei workers > 1 parallel.
    Ergebnisse kommen in Eingabereihenfolge zurück.
    """
    if workers <= 1 or len(items) <= 1:
        return [func(item) for item in items]

    with ThreadPoolExecutor(max_workers=min(workers, len(items))) as pool:
        return list(pool.map(func, items))


# Repository Facts

def get_repository(ref: RepositoryRef) -> dict:
    """
    Holt Repository-Metadaten. Einzige Existenzprüfung des Laufs:
    404 -> RepositoryNotFound.
    """
    try:
        data = get_json(f"{GITHUB_API}/repos/{ref.full_name}", headers=_github_headers())
    except NotFound as e:
        raise RepositoryNotFound(ref.full_name) from e

    if not isinstance(data, dict):
        raise TransportError(f"unexpected repository response for {ref.full_name}")
    return data


def get_license(ref: RepositoryRef) -> LicenseInfo:
    """Lizenz des Repositories. 404 oder fehlende spdx_id -> LicenseInfo(None)."""
    try:
        data = get_json(f"{GITHUB_API}/repos/{ref.full_name}/license", headers=_github_headers())
    except NotFound:
        return LicenseInfo(None)

    lic = data.get("license") if isinstance(data, dict) else None
    spdx_id = lic.get("spdx_id") if isinstance(lic, dict) else None
    return LicenseInfo(spdx_id or None)


def get_latest_release(ref: RepositoryRef) -> Optional[ReleaseInfo]:
    """Letztes Release. None wenn es keine Releases gibt."""
    try:
        data = get_json(f"{GITHUB_API}/repos/{ref.full_name}/releases/latest",
                        headers=_github_headers())
    except NotFound:
        return None

    tag = data.get("tag_name") if isinstance(data, dict) else None
    return ReleaseInfo(tag or None)


def get_default_branch(metadata: dict) -> Optional[str]:
    """Extrahiert Default-Branch aus Repository-Metadaten."""
    return metadata.get("default_branch") or None


def resolve_commit_sha(ref: RepositoryRef, branch: str) -> str:
    """
    Pinnt den Branch auf einen Commit-SHA, damit Manifeste, Tree und
    Dateiinhalte vom selben Stand kommen. Fällt auf den Branch-Namen zurück.
    """
    if branch == FALLBACK_REF:
        return branch

    url = f"{GITHUB_API}/repos/{ref.full_name}/git/ref/heads/{quote(branch, safe='/')}"
    try:
        data = get_json(url, headers=_github_headers())
    except AuditError as e:
        print(f"WARN: Cannot resolve {ref.full_name}@{branch} to a commit, using branch name: {e}",
              file=sys.stderr)
        return branch

    sha = (data.get("object") or {}).get("sha") if isinstance(data, dict) else None
    return sha or branch


def tag_exists(ref: RepositoryRef, version: str) -> bool:
    """Exakter Vergleich gegen Tag-Namen: 1.0 matcht nicht 1.0.1."""
    try:
        for tag in paginate(f"{GITHUB_API}/repos/{ref.full_name}/tags"):
            if isinstance(tag, dict) and tag.get("name") == version:
                return True
    except NotFound:
        return False
    return False


# Raw Content

def fetch_raw_file(ref: RepositoryRef, commit: str, path: str) -> str:
    """Lädt Dateiinhalt von raw.githubusercontent.com am gepinnten Commit."""
    url = f"{RAW_BASE}/{ref.full_name}/{quote(commit, safe='/')}/{quote(path, safe='/')}"
    return get_text(url, headers=_github_headers())


def fetch_manifest(ref: RepositoryRef, commit: str, filename: str) -> Optional[str]:
    """Manifest-Datei im Repository-Root, None wenn nicht vorhanden."""
    try:
        return fetch_raw_file(ref, commit, filename)
    except NotFound:
        return None


# JavaScript / npm

def node_dependencies_from_package_json(content: str) -> List[str]:
    """Namen aus dependencies und devDependencies, dedupliziert und sortiert."""
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        print(f"WARN: Invalid package.json: {e}", file=sys.stderr)
        return []

    if not isinstance(data, dict):
        return []

    names = set()
    for section in ("dependencies", "devDependencies"):
        deps = data.get(section, {}) or {}
        if isinstance(deps, dict):
            names.update(deps.keys())

    return sorted(names)


def npm_license(name: str) -> Optional[str]:
    """
    Lizenz aus der npm Registry (latest).
    Unterstützt auch die alten Formate {"type": ...} und "licenses": [...].
    """
    data = get_json(f"{NPM_REGISTRY}/{quote(name, safe='@')}/latest", headers=REGISTRY_HEADERS)
    if not isinstance(data, dict):
        return None

    lic = data.get("license")
    if isinstance(lic, str) and lic.strip():
        return lic.strip()
    if isinstance(lic, dict) and lic.get("type"):
        return str(lic["type"])

    legacy = data.get("licenses")
    if isinstance(legacy, list):
        types = [str(item.get("type")) for item in legacy if isinstance(item, dict) and item.get("type")]
        if types:
            return " OR ".join(types)

    return None


# Python (pip)

def _normalize_python_name(n: str) -> str:
    """Normalisiert Python-Package-Namen (-, _ und . werden zu -, lowercase)."""
    return re.sub(r"[-_.]+", "-", n).lower()


def python_dependencies_from_requirements(content: str) -> List[str]:
    """
    Package-Namen aus requirements.txt, in Dateireihenfolge.
    Überspringt Kommentare, Optionen (-r, -e, --index-url, ...), URLs und lokale Pfade.
    """
    names: List[str] = []
    seen = set()

    for line in content.splitlines():
        s = re.sub(r"(^|\s)#.*$", "", line).strip()
        if not s or s.startswith("-"):
            continue

        # git+https://..., https://.../pkg.whl
        if re.match(r"^[A-Za-z][A-Za-z0-9+.\-]*://", s):
            continue

        m = re.match(r"([A-Za-z0-9][A-Za-z0-9_.\-]*)", s)
        if not m:
            continue

        name = m.group(1)
        key = _normalize_python_name(name)
        if key in seen:
            continue
        seen.add(key)
        names.append(name)

    return names


def pypi_license(name: str) -> Optional[str]:
    """
    Lizenz aus PyPI.
    Reihenfolge: info.license, info.license_expression, License-Classifier.
    """
    data = get_json(f"{PYPI_BASE}/pypi/{quote(name)}/json", headers=REGISTRY_HEADERS)
    info = data.get("info") if isinstance(data, dict) else None
    if not isinstance(info, dict):
        return None

    lic = info.get("license")
    if isinstance(lic, str) and lic.strip():
        # Some packages ship the full license text here
        return next(ln.strip() for ln in lic.splitlines() if ln.strip())

    expr = info.get("license_expression")
    if isinstance(expr, str) and expr.strip():
        return expr.strip()

    for classifier in info.get("classifiers") or []:
        if isinstance(classifier, str) and classifier.startswith("License ::"):
            return classifier.split("::")[-1].strip()

    return None


# Scala (sbt)

SBT_MODULE_RE = re.compile(
    r'"([^"\s]+)"\s*%{1,3}\s*"([^"\s]+)"(?:\s*%\s*(?:"([^"\s]+)"|([A-Za-z_][\w.]*)))?'
)


def scala_dependencies_from_build_sbt(content: str) -> List[str]:
    """
    Module-IDs aus build.sbt ("group" %% "artifact" % "version"), Regex-basiert.
    Findet auch Einträge innerhalb von Seq(...)-Blöcken.
    """
    if "libraryDependencies" not in content:
        return []

    out: List[str] = []
    for m in SBT_MODULE_RE.finditer(content):
        group, artifact = m.group(1), m.group(2)
        version = m.group(3) or m.group(4)
        coord = f"{group}:{artifact}:{version}" if version else f"{group}:{artifact}"
        if coord not in out:
            out.append(coord)

    return out


# Java (Maven)

def java_dependencies_from_pom_xml(content: str) -> List[str]:
    """
    Parse Maven pom.xml.
    Keine transitive Resolution (würde Maven-Resolver benötigen).
    Liefert groupId:artifactId[:version] jedes <dependency>-Blocks.
    """
    try:
        root = ET.fromstring(content)
    except ET.ParseError as e:
        print(f"WARN: Invalid pom.xml: {e}", file=sys.stderr)
        return []

    # Determine namespace
    ns_match = re.match(r'\{([^}]+)\}', root.tag)
    ns = {"m": ns_match.group(1)} if ns_match else {}
    ns_prefix = "m:" if ns else ""

    out: List[str] = []
    for dep in root.findall(f".//{ns_prefix}dependency", ns):
        gid_elem = dep.find(f"{ns_prefix}groupId", ns)
        aid_elem = dep.find(f"{ns_prefix}artifactId", ns)
        ver_elem = dep.find(f"{ns_prefix}version", ns)

        gid = gid_elem.text.strip() if gid_elem is not None and gid_elem.text else ""
        aid = aid_elem.text.strip() if aid_elem is not None and aid_elem.text else ""
        ver = ver_elem.text.strip() if ver_elem is not None and ver_elem.text else ""

        if not (gid and aid):
            continue

        coord = f"{gid}:{aid}:{ver}" if ver else f"{gid}:{aid}"
        if coord not in out:
            out.append(coord)

    return out


# Ecosystems

@dataclasses.dataclass(frozen=True)
class Ecosystem:
    key: str
    label: str
    manifest: str
    parse: Callable[[str], List[str]]
    license_lookup: Optional[Callable[[str], Optional[str]]] = None


ECOSYSTEMS = [
    Ecosystem("node", "JavaScript", "package.json", node_dependencies_from_package_json, npm_license),
    Ecosystem("python", "Python", "requirements.txt", python_dependencies_from_requirements, pypi_license),
    Ecosystem("scala", "Scala", "build.sbt", scala_dependencies_from_build_sbt),
    Ecosystem("java", "Java", "pom.xml", java_dependencies_from_pom_xml),
]


def _lookup_license(lookup: Callable[[str], Optional[str]], name: str) -> Tuple[Optional[str], str]:
    """Registry-Lookup, der nie wirft. Gibt (license, error) zurück."""
    try:
        return lookup(name), ""
    except NotFound:
        return None, ""
    except TransportError as e:
        return None, str(e)


def check_dependencies(ref: RepositoryRef, commit: str, eco: Ecosystem,
                       workers: int = DEFAULT_WORKERS) -> List[DependencyRecord]:
    """Prüft ein Ecosystem: Manifest laden, Namen ausgeben, ggf. Lizenzen nachschlagen."""
    repo = ref.full_name

    try:
        content = fetch_manifest(ref, commit, eco.manifest)
    except TransportError as e:
        print(f"Unable to fetch {eco.manifest} for repository {repo}: {e}")
        return []

    if content is None:
        print(f"No {eco.manifest} file found for repository: {repo}")
        return []

    names = eco.parse(content)
    if not names:
        print(f"No dependencies found in {eco.manifest} for repository: {repo}")
        return []

    print(f"The dependencies in {eco.manifest} for repository {repo} are:")
    for name in names:
        print(name)

    if eco.license_lookup is None:
        print(f"Note: Checking {eco.label} dependencies license requires manual intervention.")
        return [DependencyRecord(name, eco.key) for name in names]

    print("Checking licenses for each dependency...")
    lookup = eco.license_lookup
    results = _fan_out(lambda n: _lookup_license(lookup, n), names, workers)

    records: List[DependencyRecord] = []
    for name, (lic, err) in zip(names, results):
        if err:
            print(f"Unable to fetch license for dependency {name}: {err}")
        elif lic:
            print(f"The license for dependency {name} is: {lic}")
        else:
            print(f"No license found for dependency: {name}")
        records.append(DependencyRecord(name, eco.key, lic, err))

    return records


# Embedded Licenses

def find_embedded_license_files(ref: RepositoryRef, commit: str) -> List[str]:
    """
    Fetch all file paths in repository tree recursively and keep license-like ones.
    Returns blob paths only, in tree order.
    """
    url = f"{GITHUB_API}/repos/{ref.full_name}/git/trees/{quote(commit, safe='/')}"
    data = get_json(url, params={"recursive": 1}, headers=_github_headers())
    if not isinstance(data, dict):
        return []

    if data.get("truncated"):
        print(f"WARN: Tree listing for {ref.full_name}@{commit} is truncated, some files are missing",
              file=sys.stderr)

    return [
        item["path"] for item in data.get("tree", []) or []
        if isinstance(item, dict) and item.get("type") == "blob"
        and EMBEDDED_LICENSE_RE.search(item.get("path") or "")
    ]


def _fetch_contents(ref: RepositoryRef, commit: str, path: str) -> Tuple[Optional[str], str]:
    try:
        return fetch_raw_file(ref, commit, path), ""
    except AuditError as e:
        return None, str(e) or "not found"


def check_embedded_licenses(ref: RepositoryRef, commit: str,
                            workers: int = DEFAULT_WORKERS) -> List[EmbeddedLicenseFile]:
    """Listet eingebettete Lizenzdateien und gibt deren Inhalt vollständig aus."""
    repo = ref.full_name

    try:
        paths = find_embedded_license_files(ref, commit)
    except AuditError as e:
        print(f"Unable to list repository tree for {repo}: {e}")
        return []

    if not paths:
        print(f"No embedded license files found in repository: {repo}")
        return []

    print(f"Embedded license files found in repository {repo}:")
    for path in paths:
        print(path)

    results = _fan_out(lambda p: _fetch_contents(ref, commit, p), paths, workers)

    files: List[EmbeddedLicenseFile] = []
    for path, (contents, err) in zip(paths, results):
        print(f"Contents of {path}:")
        if contents is None:
            print(f"Unable to fetch contents of {path}: {err}")
            continue
        print(contents, end="" if contents.endswith("\n") else "\n")
        files.append(EmbeddedLicenseFile(path, contents))

    return files


# Main Audit Logic

def audit_repository(ref: RepositoryRef, version: Optional[str] = None,
                     workers: int = DEFAULT_WORKERS) -> List[ExportRow]:
    """
    Prüft ein Repository und gibt alle Ergebnisse auf stdout aus.

    Workflow:
    1. Existenzprüfung über Repository-Metadaten (fatal bei 404)
    2. Lizenz, letztes Release, Default-Branch, optional Tag
    3. Default-Branch auf Commit pinnen
    4. Dependencies pro Ecosystem
    5. Eingebettete Lizenzdateien

    Raises RepositoryNotFound or TransportError before anything is printed.
    """
    repo = ref.full_name

    # 1. Existence check, nothing printed before it succeeds
    metadata = get_repository(ref)

    rows: List[ExportRow] = []

    # 2. Repository facts
    try:
        lic = get_license(ref)
        if lic.spdx_id:
            print(f"The license for repository {repo} is: {lic.spdx_id}")
        else:
            print(f"No license found for repository: {repo}")
        rows.append(ExportRow(repo, "", "license", license=lic.spdx_id or ""))
    except TransportError as e:
        print(f"Unable to fetch license for repository {repo}: {e}")

    try:
        release = get_latest_release(ref)
        if release is None:
            print(f"No releases found for repository: {repo}")
        elif not release.tag_name:
            print(f"No release version found for repository: {repo}")
        else:
            print(f"The latest release version for repository {repo} is: {release.tag_name}")
            rows.append(ExportRow(repo, "", "release", name=release.tag_name))
    except TransportError as e:
        print(f"Unable to fetch latest release for repository {repo}: {e}")

    branch = get_default_branch(metadata)
    if branch:
        print(f"The default branch for repository {repo} is: {branch}")
        rows.append(ExportRow(repo, branch, "branch", name=branch))
    else:
        print(f"No default branch found for repository: {repo}")
        branch = FALLBACK_REF

    if version:
        try:
            if tag_exists(ref, version):
                print(f"The specific version {version} exists in repository {repo}")
            else:
                print(f"The specific version {version} does not exist in repository {repo}")
        except TransportError as e:
            print(f"Unable to check tags for version {version} in repository {repo}: {e}")

    # 3. Pin branch
    commit = resolve_commit_sha(ref, branch)

    # 4. Dependencies
    for eco in ECOSYSTEMS:
        for rec in check_dependencies(ref, commit, eco, workers):
            rows.append(ExportRow(repo, commit, "dependency", rec.ecosystem, rec.name,
                                  rec.license or "", eco.manifest))

    # 5. Embedded licenses
    for f in check_embedded_licenses(ref, commit, workers):
        rows.append(ExportRow(repo, commit, "embedded", path=f.path))

    return rows


# Export Helpers

EXPORT_HEADERS = ["repo", "ref", "kind", "ecosystem", "name", "license", "path"]


def _row_values(row: ExportRow) -> List[str]:
    return [row.repo, row.ref, row.kind, row.ecosystem, row.name, row.license, row.path]


def write_results(rows: List[ExportRow], out_path: str) -> None:
    """Schreibt Ergebnisse in CSV oder Excel, je nach Dateiendung."""
    ext = os.path.splitext(out_path)[1].lower()

    if ext == ".xlsx":
        _write_excel(rows, out_path)
    else:
        _write_csv(rows, out_path)


def _write_csv(rows: List[ExportRow], out_path: str) -> None:
    """Schreibt CSV mit Semikolon-Trenner und UTF-8 BOM (für deutsches Excel)."""
    with open(out_path, "w", newline="", encoding="utf-8-sig") as f:
        writer = csv.writer(f, delimiter=';', quoting=csv.QUOTE_MINIMAL)
        writer.writerow(EXPORT_HEADERS)
        for row in rows:
            writer.writerow(_row_values(row))


def _write_excel(rows: List[ExportRow], out_path: str) -> None:
    """Schreibt Excel-Datei mit automatischer Spaltenbreite."""
    if Workbook is None:
        raise RuntimeError("openpyxl nicht installiert. Bitte 'pip install openpyxl' oder CSV nutzen.")

    wb = Workbook()
    ws = wb.active
    ws.title = "Licenses"

    ws.append(EXPORT_HEADERS)
    for row in rows:
        ws.append(_row_values(row))

    # Auto-width mit Max-Limit
    for col in ws.columns:
        max_len = max(len(str(cell.value or "")) for cell in col)
        ws.column_dimensions[col[0].column_letter].width = min(
            max_len + EXCEL_COLUMN_PADDING, EXCEL_MAX_COLUMN_WIDTH)

    wb.save(out_path)


# CLI

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="repo-license-checker",
        usage="%(prog)s <owner/repo> [specific_version] [--out FILE] [--workers N]",
        description="Check license, releases, dependency licenses and embedded licenses of a GitHub repository"
    )
    parser.add_argument("repo", nargs="?", help="Repository as owner/repo")
    parser.add_argument("version", nargs="?", help="Version to look up among the repository tags")
    parser.add_argument("--out", default=None,
                        help="Zusätzlich exportieren (.xlsx oder .csv)")
    parser.add_argument("--workers", type=int, default=DEFAULT_WORKERS,
                        help=f"Parallel registry/content lookups (default: {DEFAULT_WORKERS}, 1 = sequential)")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.repo:
        parser.print_usage()
        sys.exit(1)

    try:
        ref = RepositoryRef.parse(args.repo)
    except UsageError as e:
        parser.print_usage()
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        rows = audit_repository(ref, args.version, max(1, args.workers))
    except RepositoryNotFound:
        print(f"Repository not found: {ref.full_name}")
        sys.exit(1)
    except TransportError as e:
        print(f"Unable to reach GitHub API for repository {ref.full_name}: {e}")
        sys.exit(1)

    if not args.out:
        return

    try:
        write_results(rows, args.out)
        format_name = "Excel" if os.path.splitext(args.out)[1].lower() == ".xlsx" else "CSV"
        print(f"{format_name} geschrieben: {args.out}", file=sys.stderr)
    except Exception as e:
        print(f"WARN: Export nach '{args.out}' fehlgeschlagen: {e}", file=sys.stderr)
        fallback = os.path.splitext(args.out)[0] + ".csv"
        _write_csv(rows, fallback)
        print(f"CSV-Fallback geschrieben: {fallback}", file=sys.stderr)


if __name__ == "__main__":
    main()

"""Text-level editing helpers for Xcode ``project.pbxproj`` files.

The pbxproj format is an old-style property list.  These helpers only insert
entries into well-known sections and object lists; they never re-serialise
the document, so everything they do not touch stays byte-identical.
"""

from __future__ import annotations

import hashlib
import re

# Object ids shared by every project generated from the stock React Native template.
MAIN_GROUP_ID = "83CBB9F61A601CBA00E9B192"
RESOURCES_GROUP_ID = "0A994B0844B5445E81562B86"
RESOURCES_PHASE_ID = "13B07F8E1A680F5B00A75B9A"
APP_GROUP_ID = "13B07FAE1A68108700A75B9A"


def xcode_id(*seed: str) -> str:
    """Return a 24-character upper-case hex object id derived from *seed*.

    Ids are deterministic so that re-running a step produces identical output.
    """
    digest = hashlib.sha1("\0".join(seed).encode("utf-8")).hexdigest()
    return digest[:24].upper()


def insert_into_section(text: str, section: str, entries: list[str]) -> str:
    """Insert *entries* just before ``/* End <section> section */``.

    Returns *text* unchanged when the section does not exist.
    """
    marker = f"/* End {section} section */"
    end = text.find(marker)
    if end == -1 or not entries:
        return text
    block = "\n".join(f"\t\t{entry}" for entry in entries)
    return f"{text[:end]}{block}\n{text[end:]}"


def append_to_object_list(text: str, object_id: str, list_key: str, entries: list[str]) -> str:
    """Append *entries* to the ``<list_key> = ( ... );`` list of one object.

    Args:
        text: pbxproj content.
        object_id: Id of the owning object (``13B07F8E... /* Resources */``).
        list_key: ``children`` for groups, ``files`` for build phases.
        entries: Pre-formatted ``ID /* comment */`` strings, without commas.
    """
    owner = re.search(rf"{re.escape(object_id)}\s*(?:/\*[^*]*\*/\s*)?=\s*\{{", text)
    if owner is None or not entries:
        return text
    list_start = text.find(f"{list_key} = (", owner.end())
    if list_start == -1:
        return text
    list_end = text.find(");", list_start)
    if list_end == -1:
        return text
    # Keep the closing paren on its own line with the list's indentation.
    head = text[:list_end].rstrip(" \t")
    block = "".join(f"\t\t\t\t{entry},\n" for entry in entries)
    if not head.endswith("\n"):
        head += "\n"
    return f"{head}{block}\t\t\t{text[list_end:]}"


def find_group_id(text: str, name: str) -> str | None:
    """Return the id of the first PBXGroup whose comment equals *name* (case-insensitive)."""
    pattern = re.compile(
        rf"([A-F0-9]{{24}})\s*/\*\s*{re.escape(name)}\s*\*/\s*=\s*\{{\s*isa\s*=\s*PBXGroup;",
        re.IGNORECASE,
    )
    match = pattern.search(text)
    return match.group(1) if match else None


def has_file_reference(text: str, path: str) -> bool:
    """Whether a PBXFileReference with exactly this ``path`` already exists."""
    return re.search(rf'isa = PBXFileReference;[^}}]*path = "?{re.escape(path)}"?;', text) is not None


def add_resource_file(
    text: str,
    name: str,
    path: str,
    *,
    group_id: str,
    file_type: str = "unknown",
    extra: str = "",
    phase_id: str = RESOURCES_PHASE_ID,
) -> str:
    """Register one file as a bundle resource.

    Adds the PBXFileReference, the PBXBuildFile, a child entry in *group_id*
    and a file entry in the resources build phase.  A file whose path is
    already referenced is left alone.
    """
    if has_file_reference(text, path):
        return text
    file_ref = xcode_id("fileRef", path)
    build_ref = xcode_id("buildFile", path)
    reference = (
        f"{file_ref} /* {name} */ = {{isa = PBXFileReference; {extra}"
        f"lastKnownFileType = {file_type}; name = \"{name}\"; "
        f"path = \"{path}\"; sourceTree = \"<group>\"; }};"
    )
    build_file = (
        f"{build_ref} /* {name} in Resources */ = "
        f"{{isa = PBXBuildFile; fileRef = {file_ref} /* {name} */; }};"
    )
    text = insert_into_section(text, "PBXFileReference", [reference])
    text = insert_into_section(text, "PBXBuildFile", [build_file])
    text = append_to_object_list(text, group_id, "children", [f"{file_ref} /* {name} */"])
    return append_to_object_list(
        text, phase_id, "files", [f"{build_ref} /* {name} in Resources */"]
    )


def add_synchronized_root_group(text: str, name: str, path: str, parent_id: str = MAIN_GROUP_ID) -> str:
    """Add a folder that Xcode keeps in sync with the filesystem.

    The ``PBXFileSystemSynchronizedRootGroup`` section is created (before the
    frameworks build phase section) when the project has none yet.
    """
    if f"path = {path};" in text:
        return text
    group_id = xcode_id("syncGroup", path)
    entry = (
        f"{group_id} /* {name} */ = {{isa = PBXFileSystemSynchronizedRootGroup; "
        f"explicitFileTypes = {{}}; explicitFolders = (); path = {path}; "
        f"sourceTree = \"<group>\"; }};"
    )
    section = "PBXFileSystemSynchronizedRootGroup"
    if f"/* Begin {section} section */" in text:
        text = insert_into_section(text, section, [entry])
    else:
        marker = "/* Begin PBXFrameworksBuildPhase section */"
        if marker not in text:
            return text
        block = (
            f"/* Begin {section} section */\n\t\t{entry}\n"
            f"/* End {section} section */\n\n"
        )
        text = text.replace(marker, block + marker, 1)
    return append_to_object_list(text, parent_id, "children", [f"{group_id} /* {name} */"])


_CONFIG_LIST_RE = re.compile(
    r'([A-F0-9]{24}) /\* Build configuration list for (PBXNativeTarget|PBXProject) "([^"]*)" \*/ = \{\s*'
    r"isa = XCConfigurationList;\s*buildConfigurations = \(([^)]*)\);"
)
_LIST_ENTRY_RE = re.compile(r"([A-F0-9]{24}) /\* ([^*]*?) \*/")
_BARE_VALUE_RE = re.compile(r"[A-Za-z0-9_./]+")


def pbx_value(value: str) -> str:
    """Quote *value* for a pbxproj assignment unless it is a bare word."""
    if _BARE_VALUE_RE.fullmatch(value):
        return value
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def object_span(text: str, object_id: str) -> tuple[int, int] | None:
    """Return ``(start, end)`` of the ``ID /* ... */ = { ... };`` definition.

    The end is found by brace matching, so nested dictionaries such as
    ``buildSettings`` are included whole.
    """
    match = re.search(rf"[ \t]*{re.escape(object_id)} /\*[^*]*\*/ = \{{", text)
    if match is None:
        return None
    depth = 0
    for index in range(match.end() - 1, len(text)):
        if text[index] == "{":
            depth += 1
        elif text[index] == "}":
            depth -= 1
            if depth == 0:
                end = index + 1
                if text[end:end + 1] == ";":
                    end += 1
                return match.start(), end
    return None


def add_build_configuration(
    text: str,
    base_name: str,
    new_name: str,
    *,
    target: str | None = None,
    overrides: dict[str, str] | None = None,
) -> str:
    """Clone the *base_name* configuration of every configuration list as *new_name*.

    Both the project list and each target list get the clone, since Xcode
    resolves a configuration name at both levels.  *overrides* replace
    settings the base configuration already assigns, and only in the list of
    the native target called *target*.  Lists that already hold *new_name*
    are left alone.
    """
    for match in list(_CONFIG_LIST_RE.finditer(text)):
        list_id, owner_kind, owner_name, body = match.groups()
        entries = {name: object_id for object_id, name in _LIST_ENTRY_RE.findall(body)}
        if new_name in entries or base_name not in entries:
            continue
        base_id = entries[base_name]
        span = object_span(text, base_id)
        if span is None:
            continue

        new_id = xcode_id("buildConfiguration", list_id, new_name)
        block = text[span[0]:span[1]].strip()
        block = block.replace(f"{base_id} /* {base_name} */", f"{new_id} /* {new_name} */", 1)
        block = re.sub(
            r"(\n\s*)name = [^;]*;(\s*\};)$",
            lambda m: f"{m.group(1)}name = {pbx_value(new_name)};{m.group(2)}",
            block,
        )
        if owner_kind == "PBXNativeTarget" and owner_name == target:
            for key, value in (overrides or {}).items():
                block = re.sub(
                    rf"(\b{re.escape(key)} = )[^;]*;",
                    lambda m, value=value: f"{m.group(1)}{pbx_value(value)};",
                    block,
                )

        text = insert_into_section(text, "XCBuildConfiguration", [block])
        text = append_to_object_list(
            text, list_id, "buildConfigurations", [f"{new_id} /* {new_name} */"]
        )
    return text

"""Unit tests for the pbxproj text helpers (src.materializer.pbxproj).

Tests cover:
- Deterministic object ids
- Section insertion and object list appends
- Group lookup by name
- Resource file registration and its idempotence
- Synchronized root groups
- Build configuration cloning across configuration lists
"""

from __future__ import annotations

import re

import pytest

from src.materializer.pbxproj import (
    APP_GROUP_ID,
    MAIN_GROUP_ID,
    RESOURCES_GROUP_ID,
    add_build_configuration,
    add_resource_file,
    add_synchronized_root_group,
    append_to_object_list,
    find_group_id,
    has_file_reference,
    insert_into_section,
    object_span,
    pbx_value,
    xcode_id,
)


@pytest.fixture
def pbxproj(template_dir):
    return (template_dir / "ios/HelloWorld.xcodeproj/project.pbxproj").read_text(encoding="utf-8")


class TestIds:
    @pytest.mark.unit
    def test_xcode_id_shape(self):
        value = xcode_id("fileRef", "a.ttf")
        assert re.fullmatch(r"[0-9A-F]{24}", value)
        assert value == xcode_id("fileRef", "a.ttf")
        assert value != xcode_id("buildFile", "a.ttf")


class TestEditing:
    @pytest.mark.unit
    def test_insert_into_section(self, pbxproj):
        result = insert_into_section(pbxproj, "PBXBuildFile", ["ENTRY;"])
        assert "\t\tENTRY;\n/* End PBXBuildFile section */" in result

    @pytest.mark.unit
    def test_insert_into_missing_section(self, pbxproj):
        assert insert_into_section(pbxproj, "PBXShellScriptBuildPhase", ["x"]) == pbxproj

    @pytest.mark.unit
    def test_append_to_empty_list(self, pbxproj):
        result = append_to_object_list(pbxproj, RESOURCES_GROUP_ID, "children", ["AAA /* a */"])
        assert "children = (\n\t\t\t\tAAA /* a */,\n\t\t\t);\n\t\t\tname = Resources;" in result

    @pytest.mark.unit
    def test_append_to_unknown_object(self, pbxproj):
        assert append_to_object_list(pbxproj, "F" * 24, "children", ["x"]) == pbxproj

    @pytest.mark.unit
    def test_find_group_id(self, pbxproj):
        assert find_group_id(pbxproj, "HelloWorld") == APP_GROUP_ID
        assert find_group_id(pbxproj, "resources") == RESOURCES_GROUP_ID
        assert find_group_id(pbxproj, "Missing") is None


class TestResourceFiles:
    @pytest.mark.unit
    def test_add_resource_file(self, pbxproj):
        result = add_resource_file(
            pbxproj, "GoogleService-Info.plist", "GoogleService-Info.plist",
            group_id=APP_GROUP_ID, file_type="text.plist.xml",
        )
        file_ref = xcode_id("fileRef", "GoogleService-Info.plist")
        build_ref = xcode_id("buildFile", "GoogleService-Info.plist")

        assert has_file_reference(result, "GoogleService-Info.plist")
        assert f"{build_ref} /* GoogleService-Info.plist in Resources */ = {{isa = PBXBuildFile; fileRef = {file_ref}" in result
        # Child of the app group and member of the resources phase.
        assert result.count(f"{file_ref} /* GoogleService-Info.plist */,") == 1
        assert f"{build_ref} /* GoogleService-Info.plist in Resources */,\n" in result

    @pytest.mark.unit
    def test_add_resource_file_idempotent(self, pbxproj):
        once = add_resource_file(pbxproj, "a.ttf", "../assets/fonts/a.ttf", group_id=RESOURCES_GROUP_ID)
        assert add_resource_file(once, "a.ttf", "../assets/fonts/a.ttf", group_id=RESOURCES_GROUP_ID) == once


class TestSynchronizedRootGroup:
    @pytest.mark.unit
    def test_creates_section(self, pbxproj):
        result = add_synchronized_root_group(pbxproj, "GoogleServices", "MyApp/GoogleServices")
        group_id = xcode_id("syncGroup", "MyApp/GoogleServices")

        begin = result.index("/* Begin PBXFileSystemSynchronizedRootGroup section */")
        assert begin < result.index("/* Begin PBXFrameworksBuildPhase section */")
        assert "isa = PBXFileSystemSynchronizedRootGroup;" in result
        assert f"\t\t\t\t{group_id} /* GoogleServices */,\n" in result
        main = result.index(MAIN_GROUP_ID)
        assert result.index(f"{group_id} /* GoogleServices */,") > main

    @pytest.mark.unit
    def test_second_group_reuses_section(self, pbxproj):
        result = add_synchronized_root_group(pbxproj, "A", "MyApp/A")
        result = add_synchronized_root_group(result, "B", "MyApp/B")
        assert result.count("/* Begin PBXFileSystemSynchronizedRootGroup section */") == 1
        assert add_synchronized_root_group(result, "B", "MyApp/B") == result


TARGET_LIST_ID = "13B07F931A680F5B00A75B9A"
PROJECT_LIST_ID = "83CBB9FA1A601CBA00E9B192"


class TestBuildConfigurations:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("com.acme.app", "com.acme.app"),
            ("MyApp/Info.plist", "MyApp/Info.plist"),
            ("MyApp/Info-staging.plist", '"MyApp/Info-staging.plist"'),
            ('say "hi"', '"say \\"hi\\""'),
        ],
    )
    def test_pbx_value(self, value, expected):
        assert pbx_value(value) == expected

    @pytest.mark.unit
    def test_object_span(self, pbxproj):
        start, end = object_span(pbxproj, "13B07F941A680F5B00A75B9A")
        block = pbxproj[start:end]
        assert block.startswith("\t\t13B07F941A680F5B00A75B9A /* Debug */ = {")
        assert block.endswith("name = Debug;\n\t\t};")
        assert object_span(pbxproj, "F" * 24) is None

    @pytest.mark.unit
    def test_clone_into_every_list(self, pbxproj):
        result = add_build_configuration(
            pbxproj,
            "Debug",
            "DebugStaging",
            target="HelloWorld",
            overrides={
                "PRODUCT_BUNDLE_IDENTIFIER": "com.helloworld.staging",
                "INFOPLIST_FILE": "HelloWorld/Info-staging.plist",
                "NOT_IN_BASE": "x",
            },
        )
        target_id = xcode_id("buildConfiguration", TARGET_LIST_ID, "DebugStaging")
        project_id = xcode_id("buildConfiguration", PROJECT_LIST_ID, "DebugStaging")

        start, end = object_span(result, target_id)
        target_block = result[start:end]
        assert target_block.startswith(f"\t\t{target_id} /* DebugStaging */ = {{")
        assert "PRODUCT_BUNDLE_IDENTIFIER = com.helloworld.staging;" in target_block
        assert 'INFOPLIST_FILE = "HelloWorld/Info-staging.plist";' in target_block
        assert "PRODUCT_NAME = HelloWorld;" in target_block
        assert target_block.endswith("name = DebugStaging;\n\t\t};")
        assert "NOT_IN_BASE" not in result

        start, end = object_span(result, project_id)
        project_block = result[start:end]
        assert "ONLY_ACTIVE_ARCH = YES;" in project_block
        assert "PRODUCT_BUNDLE_IDENTIFIER" not in project_block
        assert project_block.endswith("name = DebugStaging;\n\t\t};")

        assert (
            f"\t\t\t\t13B07F951A680F5B00A75B9A /* Release */,\n"
            f"\t\t\t\t{target_id} /* DebugStaging */,\n\t\t\t);"
        ) in result
        assert f"\t\t\t\t{project_id} /* DebugStaging */,\n\t\t\t);" in result

    @pytest.mark.unit
    def test_base_configuration_untouched(self, pbxproj):
        start, end = object_span(pbxproj, "13B07F941A680F5B00A75B9A")
        base = pbxproj[start:end]
        result = add_build_configuration(
            pbxproj, "Debug", "DebugQa", target="HelloWorld",
            overrides={"PRODUCT_BUNDLE_IDENTIFIER": "com.helloworld.qa"},
        )
        start, end = object_span(result, "13B07F941A680F5B00A75B9A")
        assert result[start:end] == base

    @pytest.mark.unit
    def test_clone_is_idempotent(self, pbxproj):
        once = add_build_configuration(pbxproj, "Release", "ReleaseStaging", target="HelloWorld")
        assert add_build_configuration(once, "Release", "ReleaseStaging", target="HelloWorld") == once
        assert once.count("name = ReleaseStaging;") == 2

    @pytest.mark.unit
    def test_overrides_need_matching_target(self, pbxproj):
        result = add_build_configuration(
            pbxproj, "Release", "ReleaseStaging", target="Other",
            overrides={"PRODUCT_BUNDLE_IDENTIFIER": "com.other"},
        )
        assert "com.other" not in result
        assert result.count("PRODUCT_BUNDLE_IDENTIFIER = com.helloworld;") == 2

    @pytest.mark.unit
    def test_unknown_base_name(self, pbxproj):
        assert add_build_configuration(pbxproj, "Profile", "ProfileStaging") == pbxproj

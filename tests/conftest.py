"""Shared pytest fixtures for the materializer test suite.

Provides reusable fixtures for:
- A miniature ``HelloWorld`` template tree with every file the engine edits
- Project configurations pointing into ``tmp_path``
- A base project (copied, substituted and renamed) for feature tests
- Mock subprocess helpers
- Small PNG and font sample files
"""

from __future__ import annotations

import struct
import textwrap
import zlib
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.config import ProjectConfig
from src.materializer import PathRenamer, PlaceholderEngine, TemplateManifest, TreeCopier


# ---------------------------------------------------------------------------
# Template files
# ---------------------------------------------------------------------------

PACKAGE_JSON = textwrap.dedent("""\
    {
      "name": "HelloWorld",
      "version": "0.0.1",
      "private": true,
      "scripts": {
        "android": "react-native run-android",
        "ios": "react-native run-ios"
      },
      "dependencies": {
        "react": "19.1.0",
        "react-native": "0.81.4",
        "react-native-bootsplash": "^6.3.10",
        "react-native-maps": "^1.26.0",
        "react-native-maps-directions": "^1.9.0"
      }
    }
""")

APP_JSON = '{\n  "name": "HelloWorld",\n  "displayName": "Hello World"\n}\n'

INDEX_JS = textwrap.dedent("""\
    import { AppRegistry } from "react-native";
    import { App } from "./App";
    import { name as appName } from "./app.json";

    AppRegistry.registerComponent(appName, () => App);
""")

APP_TSX = textwrap.dedent("""\
    import { View } from "react-native";

    export const App = () => <View />;
""")

SETTINGS_GRADLE = "rootProject.name = 'HelloWorld'\ninclude ':app'\n"

ROOT_BUILD_GRADLE = textwrap.dedent("""\
    buildscript {
        ext {
            minSdkVersion = 24
            targetSdkVersion = 36
        }
        dependencies {
            classpath("com.android.tools.build:gradle")
            classpath("com.facebook.react:react-native-gradle-plugin")
            classpath("org.jetbrains.kotlin:kotlin-gradle-plugin")
        }
    }
""")

APP_BUILD_GRADLE = textwrap.dedent("""\
    apply plugin: "com.android.application"
    apply plugin: "org.jetbrains.kotlin.android"
    apply plugin: "com.facebook.react"
    apply from: project(':react-native-config').projectDir.getPath() + "/dotenv.gradle"

    android {
        ndkVersion rootProject.ext.ndkVersion
        namespace "com.helloworld"
        defaultConfig {
            applicationId "com.helloworld"
            minSdkVersion rootProject.ext.minSdkVersion
            versionCode 1
            versionName "1.0"
        }
        signingConfigs {
            debug {
                storeFile file('debug.keystore')
            }
        }
        buildTypes {
            debug {
                signingConfig signingConfigs.debug
            }
            release {
                signingConfig signingConfigs.debug
                minifyEnabled false
            }
        }
    }
""")

ANDROID_MANIFEST = textwrap.dedent("""\
    <manifest xmlns:android="http://schemas.android.com/apk/res/android">

        <uses-permission android:name="android.permission.INTERNET" />

        <application
          android:name=".MainApplication"
          android:label="@string/app_name">
          <!-- Google Maps API Key -->
          <meta-data
            android:name="com.google.android.geo.API_KEY"
            android:value="${GOOGLE_MAPS_API_KEY}" />
          <activity android:name=".MainActivity" android:exported="true" />
        </application>
    </manifest>
""")

STRINGS_XML = '<resources>\n    <string name="app_name">Hello World</string>\n</resources>\n'

MAIN_ACTIVITY = textwrap.dedent("""\
    package com.helloworld

    import com.facebook.react.ReactActivity

    class MainActivity : ReactActivity() {
      override fun getMainComponentName(): String = "HelloWorld"
    }
""")

MAIN_APPLICATION = textwrap.dedent("""\
    package com.helloworld

    import android.app.Application

    class MainApplication : Application()
""")

INFO_PLIST = textwrap.dedent("""\
    <?xml version="1.0" encoding="UTF-8"?>
    <!DOCTYPE plist PUBLIC "-//Apple//DTD PLIST 1.0//EN" "http://www.apple.com/DTDs/PropertyList-1.0.dtd">
    <plist version="1.0">
    <dict>
    \t<key>CFBundleDisplayName</key>
    \t<string>Hello World</string>
    \t<key>CFBundleName</key>
    \t<string>$(PRODUCT_NAME)</string>
    \t<key>UIViewControllerBasedStatusBarAppearance</key>
    \t<false/>
    </dict>
    </plist>
""")

APP_DELEGATE = textwrap.dedent("""\
    import UIKit
    import React
    import ReactAppDependencyProvider
    import GoogleMaps

    @main
    class AppDelegate: RCTAppDelegate {
      override func application(
        _ application: UIApplication,
        didFinishLaunchingWithOptions launchOptions: [UIApplication.LaunchOptionsKey: Any]? = nil
      ) -> Bool {
        // Initialize Google Maps
        GMSServices.provideAPIKey("<GOOGLE_MAPS_API_KEY>")
        self.moduleName = "HelloWorld"
        return super.application(application, didFinishLaunchingWithOptions: launchOptions)
      }
    }
""")

PODFILE = textwrap.dedent("""\
    platform :ios, min_ios_version_supported
    prepare_react_native_project!

    target 'HelloWorld' do
      config = use_native_modules!

      use_react_native!(
        :path => config[:reactNativePath],
        :app_path => "#{Pod::Config.instance.installation_root}/.."
      )

      # Google Maps for react-native-maps
      rn_maps_path = '../node_modules/react-native-maps'
      pod 'react-native-maps/Google', :path => rn_maps_path

      post_install do |installer|
        react_native_post_install(installer)
      end
    end
""")

PBXPROJ = textwrap.dedent("""\
    // !$*UTF8*$!
    {
    \tarchiveVersion = 1;
    \tobjectVersion = 54;
    \tobjects = {

    /* Begin PBXBuildFile section */
    \t\t13B07FBF1A68108700A75B9A /* Images.xcassets in Resources */ = {isa = PBXBuildFile; fileRef = 13B07FB51A68108700A75B9A /* Images.xcassets */; };
    /* End PBXBuildFile section */

    /* Begin PBXFileReference section */
    \t\t13B07FB51A68108700A75B9A /* Images.xcassets */ = {isa = PBXFileReference; lastKnownFileType = folder.assetcatalog; name = Images.xcassets; path = HelloWorld/Images.xcassets; sourceTree = "<group>"; };
    /* End PBXFileReference section */

    /* Begin PBXFrameworksBuildPhase section */
    /* End PBXFrameworksBuildPhase section */

    /* Begin PBXGroup section */
    \t\t0A994B0844B5445E81562B86 /* Resources */ = {
    \t\t\tisa = PBXGroup;
    \t\t\tchildren = (
    \t\t\t);
    \t\t\tname = Resources;
    \t\t\tsourceTree = "<group>";
    \t\t};
    \t\t13B07FAE1A68108700A75B9A /* HelloWorld */ = {
    \t\t\tisa = PBXGroup;
    \t\t\tchildren = (
    \t\t\t\t13B07FB51A68108700A75B9A /* Images.xcassets */,
    \t\t\t);
    \t\t\tname = HelloWorld;
    \t\t\tsourceTree = "<group>";
    \t\t};
    \t\t83CBB9F61A601CBA00E9B192 = {
    \t\t\tisa = PBXGroup;
    \t\t\tchildren = (
    \t\t\t\t13B07FAE1A68108700A75B9A /* HelloWorld */,
    \t\t\t\t0A994B0844B5445E81562B86 /* Resources */,
    \t\t\t);
    \t\t\tsourceTree = "<group>";
    \t\t};
    /* End PBXGroup section */

    /* Begin PBXResourcesBuildPhase section */
    \t\t13B07F8E1A680F5B00A75B9A /* Resources */ = {
    \t\t\tisa = PBXResourcesBuildPhase;
    \t\t\tbuildActionMask = 2147483647;
    \t\t\tfiles = (
    \t\t\t\t13B07FBF1A68108700A75B9A /* Images.xcassets in Resources */,
    \t\t\t);
    \t\t\trunOnlyForDeploymentPostprocessing = 0;
    \t\t};
    /* End PBXResourcesBuildPhase section */

    /* Begin XCBuildConfiguration section */
    \t\t13B07F941A680F5B00A75B9A /* Debug */ = {
    \t\t\tisa = XCBuildConfiguration;
    \t\t\tbuildSettings = {
    \t\t\t\tINFOPLIST_FILE = HelloWorld/Info.plist;
    \t\t\t\tPRODUCT_BUNDLE_IDENTIFIER = "org.reactjs.native.example.$(PRODUCT_NAME:rfc1034identifier)";
    \t\t\t\tPRODUCT_NAME = HelloWorld;
    \t\t\t};
    \t\t\tname = Debug;
    \t\t};
    \t\t13B07F951A680F5B00A75B9A /* Release */ = {
    \t\t\tisa = XCBuildConfiguration;
    \t\t\tbuildSettings = {
    \t\t\t\tINFOPLIST_FILE = HelloWorld/Info.plist;
    \t\t\t\tPRODUCT_BUNDLE_IDENTIFIER = com.helloworld;
    \t\t\t\tPRODUCT_NAME = HelloWorld;
    \t\t\t};
    \t\t\tname = Release;
    \t\t};
    \t\t83CBBA201A601CBA00E9B192 /* Debug */ = {
    \t\t\tisa = XCBuildConfiguration;
    \t\t\tbuildSettings = {
    \t\t\t\tIPHONEOS_DEPLOYMENT_TARGET = 15.1;
    \t\t\t\tONLY_ACTIVE_ARCH = YES;
    \t\t\t};
    \t\t\tname = Debug;
    \t\t};
    \t\t83CBBA211A601CBA00E9B192 /* Release */ = {
    \t\t\tisa = XCBuildConfiguration;
    \t\t\tbuildSettings = {
    \t\t\t\tIPHONEOS_DEPLOYMENT_TARGET = 15.1;
    \t\t\t};
    \t\t\tname = Release;
    \t\t};
    /* End XCBuildConfiguration section */

    /* Begin XCConfigurationList section */
    \t\t13B07F931A680F5B00A75B9A /* Build configuration list for PBXNativeTarget "HelloWorld" */ = {
    \t\t\tisa = XCConfigurationList;
    \t\t\tbuildConfigurations = (
    \t\t\t\t13B07F941A680F5B00A75B9A /* Debug */,
    \t\t\t\t13B07F951A680F5B00A75B9A /* Release */,
    \t\t\t);
    \t\t\tdefaultConfigurationIsVisible = 0;
    \t\t\tdefaultConfigurationName = Release;
    \t\t};
    \t\t83CBB9FA1A601CBA00E9B192 /* Build configuration list for PBXProject "HelloWorld" */ = {
    \t\t\tisa = XCConfigurationList;
    \t\t\tbuildConfigurations = (
    \t\t\t\t83CBBA201A601CBA00E9B192 /* Debug */,
    \t\t\t\t83CBBA211A601CBA00E9B192 /* Release */,
    \t\t\t);
    \t\t\tdefaultConfigurationIsVisible = 0;
    \t\t\tdefaultConfigurationName = Release;
    \t\t};
    /* End XCConfigurationList section */
    \t};
    \trootObject = 83CBB9F71A601CBA00E9B192 /* Project object */;
    }
""")

BUILDABLE_REFERENCE = """\
            <BuildableReference
               BuildableIdentifier = "primary"
               BlueprintIdentifier = "13B07F861A680F5B00A75B9A"
               BuildableName = "HelloWorld.app"
               BlueprintName = "HelloWorld"
               ReferencedContainer = "container:HelloWorld.xcodeproj">
            </BuildableReference>"""

SCHEME = f"""\
<?xml version="1.0" encoding="UTF-8"?>
<Scheme
   LastUpgradeVersion = "1210"
   version = "1.3">
   <BuildAction
      parallelizeBuildables = "YES"
      buildImplicitDependencies = "YES">
      <BuildActionEntries>
         <BuildActionEntry
            buildForRunning = "YES">
{BUILDABLE_REFERENCE}
         </BuildActionEntry>
      </BuildActionEntries>
   </BuildAction>
   <LaunchAction
      buildConfiguration = "Debug">
      <BuildableProductRunnable
         runnableDebuggingMode = "0">
{BUILDABLE_REFERENCE}
      </BuildableProductRunnable>
   </LaunchAction>
</Scheme>
"""

WORKSPACE_DATA = textwrap.dedent("""\
    <?xml version="1.0" encoding="UTF-8"?>
    <Workspace
       version = "1.0">
       <FileRef
          location = "group:HelloWorld.xcodeproj">
       </FileRef>
    </Workspace>
""")

STORYBOARD = textwrap.dedent("""\
    <?xml version="1.0" encoding="UTF-8"?>
    <document type="com.apple.InterfaceBuilder3.CocoaTouch.Storyboard.XIB" version="3.0">
        <resources>
            <image name="SplashScreen" width="100" height="100"/>
        </resources>
    </document>
""")

RN_CONFIG = textwrap.dedent("""\
    module.exports = {
      project: {
        ios: {},
        android: {},
      },
    };
""")

TEMPLATE_FILES: dict[str, str] = {
    "package.json": PACKAGE_JSON,
    "app.json": APP_JSON,
    "index.js": INDEX_JS,
    "App.tsx": APP_TSX,
    "_gitignore": "node_modules/\n.env\n",
    "react-native.config.js": RN_CONFIG,
    "android/settings.gradle": SETTINGS_GRADLE,
    "android/build.gradle": ROOT_BUILD_GRADLE,
    "android/app/build.gradle": APP_BUILD_GRADLE,
    "android/app/src/main/AndroidManifest.xml": ANDROID_MANIFEST,
    "android/app/src/main/res/values/strings.xml": STRINGS_XML,
    "android/app/src/main/java/com/helloworld/MainActivity.kt": MAIN_ACTIVITY,
    "android/app/src/main/java/com/helloworld/MainApplication.kt": MAIN_APPLICATION,
    "ios/Podfile": PODFILE,
    "ios/HelloWorld/Info.plist": INFO_PLIST,
    "ios/HelloWorld/AppDelegate.swift": APP_DELEGATE,
    "ios/HelloWorld/BootSplash.storyboard": STORYBOARD,
    "ios/HelloWorld/Images.xcassets/SplashScreen.imageset/Contents.json": '{"images": []}\n',
    "ios/HelloWorld/Images.xcassets/AppIcon.appiconset/Contents.json": '{"images": []}\n',
    "ios/HelloWorld.xcodeproj/project.pbxproj": PBXPROJ,
    "ios/HelloWorld.xcodeproj/xcshareddata/xcschemes/HelloWorld.xcscheme": SCHEME,
    "ios/HelloWorld.xcworkspace/contents.xcworkspacedata": WORKSPACE_DATA,
    # Never copied.
    "node_modules/react/index.js": "module.exports = {};\n",
    "android/app/build/outputs/app.apk": "binary",
    "ios/Pods/Manifest.lock": "PODFILE CHECKSUM: 0\n",
}


def write_tree(root: Path, files: dict[str, str]) -> Path:
    """Write ``{relative path: content}`` under *root*."""
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


# ---------------------------------------------------------------------------
# Sample binary files
# ---------------------------------------------------------------------------


def make_png(width: int = 2, height: int = 3) -> bytes:
    """Build a valid grayscale PNG of the given size."""
    def chunk(tag: bytes, data: bytes) -> bytes:
        body = tag + data
        return struct.pack(">I", len(data)) + body + struct.pack(">I", zlib.crc32(body))

    header = struct.pack(">IIBBBBB", width, height, 8, 0, 0, 0, 0)
    raw = b"".join(b"\x00" + b"\xff" * width for _ in range(height))
    return (
        b"\x89PNG\r\n\x1a\n"
        + chunk(b"IHDR", header)
        + chunk(b"IDAT", zlib.compress(raw))
        + chunk(b"IEND", b"")
    )


@pytest.fixture
def png():
    """Factory returning PNG bytes: ``png(10, 20)``."""
    return make_png


@pytest.fixture
def font_dir(tmp_path: Path) -> Path:
    """Directory with two font files and one unrelated file."""
    fonts = tmp_path / "fonts"
    fonts.mkdir()
    (fonts / "Inter-Regular.ttf").write_bytes(b"\x00\x01\x00\x00regular")
    (fonts / "Inter-Bold.otf").write_bytes(b"OTTObold")
    (fonts / "README.txt").write_text("licence", encoding="utf-8")
    return fonts


# ---------------------------------------------------------------------------
# Paths & Directories
# ---------------------------------------------------------------------------


@pytest.fixture
def template_dir(tmp_path: Path) -> Path:
    """Miniature HelloWorld template tree."""
    return write_tree(tmp_path / "template", TEMPLATE_FILES)


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    out = tmp_path / "out"
    out.mkdir()
    return out


@pytest.fixture
def make_config(output_dir: Path, template_dir: Path):
    """Factory for project configurations writing into ``output_dir``.

    Usage:
        def test_x(make_config):
            config = make_config(environments=["staging"])
    """
    def factory(**overrides: Any) -> ProjectConfig:
        data: dict[str, Any] = {
            "project_name": "MyApp",
            "bundle_identifier": "com.acme.myapp",
            "display_name": "My App",
            "output_dir": output_dir,
            "template_dir": template_dir,
            "skip_install": True,
            "skip_git": True,
            "skip_pods": True,
        }
        data.update(overrides)
        return ProjectConfig(**data)

    return factory


@pytest.fixture
def base_project(template_dir: Path):
    """Factory that copies, substitutes and renames the template for *config*.

    Returns the destination root, ready for asset and feature tests.
    """
    async def factory(config: ProjectConfig) -> Path:
        manifest = TemplateManifest.for_template(template_dir)
        dest = config.project_path
        await TreeCopier(template_dir, dest).copy()
        PlaceholderEngine(manifest).apply(dest, config)
        PathRenamer(manifest).apply(dest, config)
        return dest

    return factory


# ---------------------------------------------------------------------------
# Mock subprocess
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_subprocess():
    """Mock asyncio subprocess for testing command execution.

    Returns a factory that creates mock subprocess instances with configurable
    stdout, stderr, and return codes.

    Usage:
        def test_command(mock_subprocess):
            proc = mock_subprocess(stdout="output", returncode=0)
            with patch("asyncio.create_subprocess_exec", return_value=proc):
                ...
    """
    def factory(
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
    ) -> AsyncMock:
        mock_proc = AsyncMock()
        mock_proc.communicate = AsyncMock(
            return_value=(stdout.encode("utf-8"), stderr.encode("utf-8"))
        )
        mock_proc.returncode = returncode
        mock_proc.pid = 99999
        mock_proc.kill = MagicMock()
        mock_proc.wait = AsyncMock(return_value=returncode)
        return mock_proc

    return factory

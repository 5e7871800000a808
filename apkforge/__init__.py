"""
apkforge: Android APK builds from native code without Gradle.

Resolves a consistent SDK / build-tools / NDK configuration from what is
installed on the machine and drives a fixed compile, link, package, sign,
verify and deploy pipeline against it.
"""

__version__ = "1.0.0"
__author__ = "apkforge Team"

from os import getenv
from pathlib import Path

# repository root, overridable per invocation from the CLI
REPO_ROOT = Path(getenv("APTPOOL_ROOT", "."))

# default repository layout, space separated in the environment
ARCHITECTURES = getenv("APTPOOL_ARCHITECTURES", "amd64").split()
COMPONENTS = getenv("APTPOOL_COMPONENTS", "main").split()
DISTRIBUTIONS = getenv("APTPOOL_DISTRIBUTIONS", "stable testing").split()

ORIGIN = getenv("APTPOOL_ORIGIN", "aptpool")
LABEL = getenv("APTPOOL_LABEL", ORIGIN)
DESCRIPTION = getenv("APTPOOL_DESCRIPTION", "aptpool Debian Repository")

# number of versions of each (name, architecture) pair kept by prune
DEFAULT_KEEP_VERSIONS = 5
KEEP_VERSIONS = int(getenv("APTPOOL_KEEP_VERSIONS", str(DEFAULT_KEEP_VERSIONS)))

DEFAULT_COMPONENT = "main"
ARCH_ALL = "all"
DEB_SUFFIX = ".deb"

DISTS_DIR = "dists"
POOL_DIR = "pool"
PACKAGES_INDEX = "Packages"
RELEASE_FILE = "Release"
RELEASE_GPG_FILE = "Release.gpg"
INRELEASE_FILE = "InRelease"
HTML_INDEX_FILE = "index.html"

RELEASE_DATE_FORMAT = "%a, %d %b %Y %H:%M:%S UTC"
RELEASE_SIZE_WIDTH = 16

GPG_PASSPHRASE_ENV = "GPG_PASSPHRASE"

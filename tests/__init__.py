"""
Relay core unit tests
"""

import unittest
from .api import AuthenticatedAPITests, GenericAPITests, GitHubAPITests, ImageAPITests, TelegramAPITests
from .batch import BatchUploaderTests
from .cli import StandaloneCLITests, UploadCommandTests
from .client import RemoteFileStoreTests
from .config import LoggerHelperTests, SettingsTests
from .paths import PathResolutionTests
from .services import ImageUploaderTests, TelegramBotTests
from .writer import ConflictAwareWriterTests


TEST_CLASSES = [
    AuthenticatedAPITests,
    BatchUploaderTests,
    ConflictAwareWriterTests,
    GenericAPITests,
    GitHubAPITests,
    ImageAPITests,
    ImageUploaderTests,
    LoggerHelperTests,
    PathResolutionTests,
    RemoteFileStoreTests,
    SettingsTests,
    StandaloneCLITests,
    TelegramAPITests,
    TelegramBotTests,
    UploadCommandTests,
]


def get_suite() -> unittest.TestSuite:
    suite = unittest.TestSuite()
    for cls in TEST_CLASSES:
        for fixture in filter(lambda f: f.startswith("test_"), dir(cls)):
            suite.addTest(cls(fixture))
    return suite

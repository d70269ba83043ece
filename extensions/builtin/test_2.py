# Test 2
# has a wave icon

from loguru import logger

from extensions.base import Extension, ExtensionCategory, ExtensionManifest


def _on_register():
    logger.info("Test 2  registered")


extension = Extension(
    manifest=ExtensionManifest(
        id="test-2",
        name="Test 2 ",
        version="1.0.0",
        description="has a wave icon",
        author="david.metzler.2003@gmail.com",
        icon="AudioWaveform",
        category=ExtensionCategory.MODIFIER,
    ),
    on_register=_on_register,
)

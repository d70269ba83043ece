# This is a test extension

from loguru import logger

from extensions.base import Extension, ExtensionCategory, ExtensionManifest


def _on_register():
    logger.info("This is a test extension registered")


extension = Extension(
    manifest=ExtensionManifest(
        id="this-is-a-test-extension",
        name="This is a test extension",
        version="1.0.0",
        description="j efab—j ",
        author="david.metzler.2003@gmail.com",
        icon="Package",
        category=ExtensionCategory.MODIFIER,
    ),
    on_register=_on_register,
)

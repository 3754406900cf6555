"""
Executable artifacts for the environment's Lambda function.

The function's business logic lives in another repository and is swapped in
later, so the composer only holds a Payload: something that can supply a
code archive plus the runtime and handler to run it with. ``InlinePayload``
is the placeholder deployed until real code exists; ``ArchivePayload``
points at a zip file or directory built elsewhere.

Invocation contract at this boundary: one event in, one
``{"statusCode": int, "body": str}`` response out.
"""

from dataclasses import dataclass
from typing import Protocol

import pulumi

DEFAULT_RUNTIME: str = "nodejs22.x"
DEFAULT_HANDLER: str = "src/index.handler"

PLACEHOLDER_SOURCE: str = """\
exports.handler = async (event) => {
  console.log('Lambda placeholder - update with actual code from lambda-app repo');
  return { statusCode: 200, body: 'Placeholder' };
};
"""


class Payload(Protocol):
    runtime: str
    handler: str

    def archive(self) -> pulumi.Archive:
        """Return the code archive Pulumi uploads for the function."""
        ...


@dataclass(frozen=True)
class InlinePayload:
    """
    Source text packaged as a single-file archive.

    The file is placed at the module path named by ``handler`` so that
    "src/index.handler" resolves to src/index.js inside the archive.
    """

    source: str = PLACEHOLDER_SOURCE
    runtime: str = DEFAULT_RUNTIME
    handler: str = DEFAULT_HANDLER
    extension: str = ".js"

    @property
    def filename(self) -> str:
        module, _, _ = self.handler.rpartition(".")
        return f"{module}{self.extension}"

    def archive(self) -> pulumi.Archive:
        return pulumi.AssetArchive({self.filename: pulumi.StringAsset(self.source)})


@dataclass(frozen=True)
class ArchivePayload:
    """A zip file or directory produced by the function's own build."""

    path: str
    runtime: str = DEFAULT_RUNTIME
    handler: str = DEFAULT_HANDLER

    def archive(self) -> pulumi.Archive:
        return pulumi.FileArchive(self.path)

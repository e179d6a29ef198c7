# flake8: noqa
from zmetadata.convenience import (consolidate_metadata, open_consolidated,
                                   root_info, tree, write_consolidated)
from zmetadata.errors import (DuplicateKeyError, HierarchyDepthError,
                              MalformedDocumentError, MetadataError,
                              MissingCoreDocumentError, NotAZarrGroupError,
                              UnreadableDocumentError, UnsupportedFormatError,
                              WriteFailureError)
from zmetadata.hierarchy import (HierarchyWalker, NodeKind, read_group, read_node,
                                 walk_hierarchy)
from zmetadata.keys import IdentifierKeyCodec, IdentityKeyCodec
from zmetadata.mappings import AggregateMap
from zmetadata.storage import ConsolidatedMetadataStore, DirectoryStore
from zmetadata.sync import ProcessSynchronizer, ThreadSynchronizer
from zmetadata.version import version as __version__

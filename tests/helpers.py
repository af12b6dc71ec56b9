"""
Shared fixtures for the prosync test-suite: small file trees with pinned
timestamps and minimal ProPresenter 6 documents.
"""
import os
from pathlib import Path

T0 = 1_600_000_000  # fixed epoch so assertions never depend on the clock


def write(path: Path, content: str = "x", mtime: float = T0) -> Path:
    """Create *path* (and parents) with *content* and pin its mtime."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    os.utime(path, (mtime, mtime))
    return path


def mtime(path: Path) -> float:
    return path.stat().st_mtime


PLAYLIST_TEMPLATE = """<?xml version="1.0" encoding="utf-8"?>
<RVPlaylistDocument versionNumber="600" os="1" buildNumber="6016">
    <RVPlaylistNode displayName="root" UUID="A1" modifiedDate="{modified}" type="0" isExpanded="true" hotFolderType="2">
        <children containerClass="NSMutableArray">
            <RVPlaylistNode displayName="{name}" UUID="B2" modifiedDate="{modified}" type="3" isExpanded="false" hotFolderType="2">
                <children containerClass="NSMutableArray">
{cues}
                </children>
            </RVPlaylistNode>
        </children>
    </RVPlaylistNode>
</RVPlaylistDocument>
"""

CUE_TEMPLATE = ('                    <RVDocumentCue UUID="C{i}" displayName="{title}" '
                'filePath="{path}" selectedArrangementID="" actionType="0" '
                'timeStamp="0.000000" delayTime="0.000000" />')


def playlist_xml(modified: str, references=(), name: str = "Sunday") -> str:
    cues = "\n".join(
        CUE_TEMPLATE.format(i=i, title=f"Song {i}", path=ref)
        for i, ref in enumerate(references)
    )
    return PLAYLIST_TEMPLATE.format(modified=modified, name=name, cues=cues)


def write_playlist(path: Path, modified: str, references=(), mtime: float = T0,
                   name: str = "Sunday") -> Path:
    return write(path, playlist_xml(modified, references, name), mtime)


def sync_preferences_xml(source: str, mode: str = "UpdateBoth", replace: str = "false",
                         library: str = "true", playlists: str = "true",
                         templates: str = "false", media: str = "true") -> str:
    return f"""<?xml version="1.0" encoding="utf-8"?>
<RVPreferencesSynchronization>
    <Source>{source}</Source>
    <SyncLibrary>{library}</SyncLibrary>
    <SyncPlaylists>{playlists}</SyncPlaylists>
    <SyncTemplates>{templates}</SyncTemplates>
    <SyncMedia>{media}</SyncMedia>
    <ReplaceFiles>{replace}</ReplaceFiles>
    <SyncMode>{mode}</SyncMode>
</RVPreferencesSynchronization>
"""


def general_preferences_xml(library: str, media: str) -> str:
    return f"""<?xml version="1.0" encoding="utf-8"?>
<RVPreferencesGeneral>
    <SelectedLibraryFolder>
        <Location>{library}</Location>
        <Name>Default</Name>
    </SelectedLibraryFolder>
    <MediaRepositoryPath>{media}</MediaRepositoryPath>
</RVPreferencesGeneral>
"""

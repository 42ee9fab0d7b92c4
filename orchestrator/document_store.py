"""JSON file storage for project documents, one file per project and language."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from contracts.document import ProjectDocument
from contracts.generation import Language

logger = logging.getLogger(__name__)


class JsonDocumentStore:
    """Stores documents as ``<root>/<project_id>/<language>.json``.

    The pipeline never saves on its own; callers decide when a session's
    document is written back.
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def path_for(self, project_id: str, language: Union[str, Language]) -> Path:
        return self.root / project_id / f"{Language(language).value}.json"

    def exists(self, project_id: str, language: Union[str, Language]) -> bool:
        return self.path_for(project_id, language).exists()

    def load(self, project_id: str, language: Union[str, Language]) -> Dict[str, Any]:
        """Load and validate a document; an empty document when none is stored."""
        path = self.path_for(project_id, language)
        if not path.exists():
            logger.info("No stored document at %s, starting empty", path)
            return ProjectDocument().to_data()
        data = json.loads(path.read_text(encoding="utf-8"))
        return ProjectDocument.from_data(data).to_data()

    def save(
        self,
        project_id: str,
        language: Union[str, Language],
        document: Optional[Dict[str, Any]],
    ) -> Path:
        """Validate and write ``document``; returns the file path."""
        path = self.path_for(project_id, language)
        path.parent.mkdir(parents=True, exist_ok=True)
        data = ProjectDocument.from_data(document).to_data()
        path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        logger.info("Saved %s (%s) to %s", project_id, Language(language).value, path)
        return path

    def list_projects(self) -> List[str]:
        if not self.root.exists():
            return []
        return sorted(child.name for child in self.root.iterdir() if child.is_dir())

"""JSON export of a single project."""
import json
import logging
import os
import re
import tempfile

import portalocker

logger = logging.getLogger(__name__)


def export_filename(name):
    return re.sub(r'\s+', '_', name or 'project') + '_gantt.json'


def export_payload(project):
    data = project.to_dict()
    data.pop('owner_id', None)
    return data


def export_bytes(project):
    return json.dumps(export_payload(project), indent=2, ensure_ascii=False).encode('utf-8')


def _atomic_write_json(path, data):
    """Write JSON atomically to avoid partial writes (write temp then replace)."""
    dir_ = os.path.dirname(os.path.abspath(path))
    os.makedirs(dir_, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=dir_, prefix='.tmp_', suffix='.json')
    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as tmp_f:
            json.dump(data, tmp_f, indent=2, ensure_ascii=False)
        os.replace(tmp_path, path)
    finally:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)


def write_export(path, project):
    """Write the project's export to ``path`` holding an exclusive lock."""
    # Exclusive lock via companion .lock file to serialize writers
    lock_path = str(path) + '.lock'
    os.makedirs(os.path.dirname(os.path.abspath(lock_path)), exist_ok=True)
    with open(lock_path, 'w') as lock_f:
        portalocker.lock(lock_f, portalocker.LOCK_EX)
        try:
            _atomic_write_json(str(path), export_payload(project))
        finally:
            portalocker.unlock(lock_f)
    logger.info('Exported project %s to %s', project.id, path)
    return path

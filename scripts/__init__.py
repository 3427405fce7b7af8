"""# Scripts

This directory contains the course's command line tools.

## Scripts

| Script | Purpose |
|--------|---------|
| `verify_rbac.py` | Checks admin/viewer permissions against a running Weaviate |
| `export_data.py` | Exports a collection to JSON |
| `import_data.py` | Imports a JSON export (schema-validated) |
| `trigger_backup.py` | Starts a backup and optionally waits for it |

## Usage

```bash
# Start Weaviate
docker compose -f docker/docker-compose.yml up -d

# RBAC checks
verify-rbac
verify-rbac --json

# Data
export-data --collection Note
import-data exports/Note.json --collection NoteCopy --recreate
validate-export exports/Note.json

# Backups
trigger-backup --id course-backup-1 --wait
```
"""

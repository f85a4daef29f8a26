"""Book catalog: upload files, keep their metadata in a JSON sidecar, list/download/delete them."""

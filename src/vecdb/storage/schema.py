"""Database schema for the metadata store."""

SCHEMA = """
-- Documents table: one row per embedded chunk; id is also the index key
CREATE TABLE IF NOT EXISTS documents (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    content TEXT NOT NULL,
    source TEXT NOT NULL,
    type TEXT NOT NULL,
    title TEXT,
    category TEXT,
    content_hash TEXT NOT NULL UNIQUE,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

-- Per-document vector statistics
CREATE TABLE IF NOT EXISTS document_vectors (
    document_id INTEGER PRIMARY KEY,
    vector_count INTEGER NOT NULL DEFAULT 0,
    average_vector_length REAL NOT NULL DEFAULT 0,
    total_tokens INTEGER NOT NULL DEFAULT 0,
    chunks_count INTEGER NOT NULL DEFAULT 0,
    last_updated TEXT,
    FOREIGN KEY (document_id) REFERENCES documents(id) ON DELETE CASCADE
);

-- Corpus-wide statistics (singleton row)
CREATE TABLE IF NOT EXISTS database_stats (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    total_documents INTEGER NOT NULL DEFAULT 0,
    total_vectors INTEGER NOT NULL DEFAULT 0,
    total_tokens INTEGER NOT NULL DEFAULT 0,
    total_chunks INTEGER NOT NULL DEFAULT 0,
    average_vectors_per_doc REAL NOT NULL DEFAULT 0,
    total_content_size INTEGER NOT NULL DEFAULT 0,
    last_import_at TEXT,
    last_updated TEXT
);

INSERT OR IGNORE INTO database_stats (id) VALUES (1);

-- One row per import run
CREATE TABLE IF NOT EXISTS import_operations (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    started_at TEXT NOT NULL,
    completed_at TEXT,
    status TEXT NOT NULL CHECK (status IN ('running', 'completed', 'failed')),
    files_processed INTEGER NOT NULL DEFAULT 0,
    files_failed INTEGER NOT NULL DEFAULT 0,
    total_processing_time REAL NOT NULL DEFAULT 0,
    error_details TEXT,
    configuration TEXT
);

-- Import defaults (singleton row)
CREATE TABLE IF NOT EXISTS import_settings (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    chunk_size INTEGER NOT NULL,
    overlap_size INTEGER NOT NULL,
    batch_size INTEGER NOT NULL,
    parsing_strategy TEXT NOT NULL,
    file_types TEXT NOT NULL
);

-- Store metadata (embedding model, dimension)
CREATE TABLE IF NOT EXISTS metadata (
    key TEXT PRIMARY KEY,
    value TEXT
);

CREATE INDEX IF NOT EXISTS idx_documents_source ON documents(source);
CREATE INDEX IF NOT EXISTS idx_import_operations_started ON import_operations(started_at);
"""

CREATE_EVENTS = """
CREATE TABLE IF NOT EXISTS events (
    id VARCHAR(32) PRIMARY KEY,
    title VARCHAR(80) NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    location VARCHAR(90) NOT NULL,
    categories TEXT[] NOT NULL DEFAULT '{}',
    links TEXT[] NOT NULL DEFAULT '{}',
    group_link TEXT,
    image_base64 TEXT,
    entry_date TIMESTAMPTZ NOT NULL,
    start_date TIMESTAMPTZ NOT NULL,
    end_date TIMESTAMPTZ NOT NULL,
    submitter_id BIGINT NOT NULL,
    submitter_name VARCHAR(255) NOT NULL,
    status VARCHAR(32) NOT NULL DEFAULT 'PENDING',
    rejection_reason TEXT,
    updated_count INTEGER NOT NULL DEFAULT 0,
    message_id BIGINT,
    details_message_id BIGINT,
    pushed_at TIMESTAMPTZ,
    pushed_count INTEGER NOT NULL DEFAULT 0,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
"""

CREATE_INDEX_EVENTS_SUBMITTER = """
CREATE INDEX IF NOT EXISTS idx_events_submitter ON events (submitter_id);
"""

CREATE_INDEX_EVENTS_DATES = """
CREATE INDEX IF NOT EXISTS idx_events_dates ON events (start_date, end_date);
"""

CREATE_EVENT_ARCHIVE = """
CREATE TABLE IF NOT EXISTS event_archive (
    id VARCHAR(32) PRIMARY KEY,
    title VARCHAR(80) NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    location VARCHAR(90) NOT NULL,
    categories TEXT[] NOT NULL DEFAULT '{}',
    links TEXT[] NOT NULL DEFAULT '{}',
    group_link TEXT,
    image_base64 TEXT,
    entry_date TIMESTAMPTZ NOT NULL,
    start_date TIMESTAMPTZ NOT NULL,
    end_date TIMESTAMPTZ NOT NULL,
    submitter_id BIGINT NOT NULL,
    submitter_name VARCHAR(255) NOT NULL,
    status VARCHAR(32) NOT NULL,
    rejection_reason TEXT,
    updated_count INTEGER NOT NULL DEFAULT 0,
    message_id BIGINT,
    details_message_id BIGINT,
    pushed_at TIMESTAMPTZ,
    pushed_count INTEGER NOT NULL DEFAULT 0,
    created_at TIMESTAMPTZ NOT NULL,
    updated_at TIMESTAMPTZ NOT NULL,
    archived_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
"""

CREATE_EVENT_TEMPLATES = """
CREATE TABLE IF NOT EXISTS event_templates (
    id VARCHAR(32) PRIMARY KEY,
    owner_id BIGINT NOT NULL,
    owner_name VARCHAR(255) NOT NULL,
    name VARCHAR(50) NOT NULL,
    title VARCHAR(80) NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    location VARCHAR(90) NOT NULL,
    categories TEXT[] NOT NULL DEFAULT '{}',
    links TEXT[] NOT NULL DEFAULT '{}',
    group_link TEXT,
    image_base64 TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
"""

CREATE_INDEX_TEMPLATES_OWNER = """
CREATE INDEX IF NOT EXISTS idx_event_templates_owner ON event_templates (owner_id);
"""

CREATE_BLACKLIST = """
CREATE TABLE IF NOT EXISTS blacklisted_users (
    user_id BIGINT PRIMARY KEY,
    user_name VARCHAR(255),
    banned_by BIGINT NOT NULL,
    banned_by_name VARCHAR(255),
    reason TEXT,
    banned_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
"""

STATEMENTS = (
    CREATE_EVENTS,
    CREATE_INDEX_EVENTS_SUBMITTER,
    CREATE_INDEX_EVENTS_DATES,
    CREATE_EVENT_ARCHIVE,
    CREATE_EVENT_TEMPLATES,
    CREATE_INDEX_TEMPLATES_OWNER,
    CREATE_BLACKLIST,
)

import json, logging, sqlite3, time, uuid, datetime as dt
from typing import Optional, Tuple, List, Dict, Any
from .db import get_conn

logger = logging.getLogger(__name__)

DDL = """
CREATE TABLE IF NOT EXISTS operation_log (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  ts TEXT NOT NULL,
  action TEXT NOT NULL,
  entity_type TEXT,
  entity_id TEXT,
  request_id TEXT,
  payload_json TEXT,
  after_json TEXT,
  result TEXT,
  err_msg TEXT,
  latency_ms INTEGER
);
CREATE INDEX IF NOT EXISTS idx_log_ts ON operation_log(ts);
CREATE INDEX IF NOT EXISTS idx_log_action ON operation_log(action);
"""

def ensure_log_schema(db_path: Optional[str] = None):
    with get_conn(db_path) as conn:
        conn.executescript(DDL)

class LogContext:
    """One operation_log row per user-triggered operation (capture, toggle, ...)."""

    def __init__(self, action: str, db_path: Optional[str] = None):
        self.action = action
        self.db_path = db_path
        self.request_id = str(uuid.uuid4())
        self.start = time.perf_counter()
        self.after = None
        self.payload = None
        self.entity_type = None
        self.entity_id = None

    def set_entity(self, etype: str, eid: str):
        self.entity_type = etype
        self.entity_id = eid

    def set_after(self, obj): self.after = obj
    def set_payload(self, obj): self.payload = obj

    def write(self, result: str = "OK", err: Optional[str] = None):
        elapsed_ms = int((time.perf_counter() - self.start) * 1000)
        rec = {
            "ts": dt.datetime.now(dt.timezone.utc).isoformat(),
            "action": self.action,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "request_id": self.request_id,
            "payload_json": json.dumps(self.payload, ensure_ascii=False) if self.payload is not None else None,
            "after_json": json.dumps(self.after, ensure_ascii=False) if self.after is not None else None,
            "result": result,
            "err_msg": err,
            "latency_ms": elapsed_ms,
        }
        # 日志写入失败不影响业务流程
        try:
            with get_conn(self.db_path) as conn:
                conn.execute(
                    """INSERT INTO operation_log
                    (ts,action,entity_type,entity_id,request_id,payload_json,after_json,result,err_msg,latency_ms)
                    VALUES(:ts,:action,:entity_type,:entity_id,:request_id,:payload_json,:after_json,:result,:err_msg,:latency_ms)""",
                    rec
                )
        except sqlite3.Error as e:
            logger.warning("operation_log write failed for %s: %s", self.action, e)

def search_operation_logs(q: str|None, action: str|None, ts_from: str|None, ts_to: str|None,
                          page: int, size: int, db_path: Optional[str] = None) -> Tuple[int, List[Dict[str, Any]]]:
    where = []
    params = {}
    if q:
        where.append("(payload_json LIKE :q OR after_json LIKE :q OR err_msg LIKE :q)")
        params["q"] = f"%{q}%"
    if action:
        where.append("action = :action")
        params["action"] = action
    if ts_from:
        where.append("ts >= :from")
        params["from"] = ts_from
    if ts_to:
        where.append("ts <= :to")
        params["to"] = ts_to
    wh = " WHERE " + " AND ".join(where) if where else ""
    sql = f"SELECT * FROM operation_log{wh} ORDER BY ts DESC, id DESC LIMIT :limit OFFSET :offset"
    count_sql = f"SELECT COUNT(1) AS cnt FROM operation_log{wh}"
    with get_conn(db_path) as conn:
        total = conn.execute(count_sql, params).fetchone()["cnt"]
        rows = conn.execute(sql, {**params, "limit": size, "offset": (page-1)*size}).fetchall()
        return total, [dict(r) for r in rows]

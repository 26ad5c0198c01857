"""SQLite persistence layer for company snapshots and financial statements."""
from __future__ import annotations

import logging
from dataclasses import asdict, fields
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import bindparam, create_engine, text
from sqlalchemy.engine import Connection, Engine

from stock_valuation.domain.models.financials import (
    Company,
    LineItem,
    MarketSnapshot,
    PeerComparison,
    Statement,
    StatementCategory,
)

logger = logging.getLogger(__name__)

_COMPANY_COLUMNS = [f.name for f in fields(Company) if f.name != "company_id"]
_PEER_COLUMNS = [f.name for f in fields(PeerComparison)]


class SQLiteRepository:
    """Lightweight gateway for reading and writing market data."""

    def __init__(self, database_uri: str, *, echo: bool = False) -> None:
        self._engine: Engine = create_engine(database_uri, echo=echo, future=True)
        self._ensure_schema()

    @property
    def engine(self) -> Engine:
        return self._engine

    def dispose(self) -> None:
        self._engine.dispose()

    # -----------------
    # Schema management
    # -----------------
    def _ensure_schema(self) -> None:
        """Create core tables if they do not already exist."""
        ddl = [
            """
            CREATE TABLE IF NOT EXISTS company (
              company_id INTEGER PRIMARY KEY AUTOINCREMENT,
              name TEXT NOT NULL,
              industry TEXT,
              description TEXT,
              isin TEXT,
              bse_code TEXT,
              nse_code TEXT,
              year_high REAL,
              year_low REAL,
              percent_change REAL,
              created_at DATETIME DEFAULT CURRENT_TIMESTAMP
            );
            """,
            """
            CREATE TABLE IF NOT EXISTS officers (
              officer_id INTEGER PRIMARY KEY AUTOINCREMENT,
              company_id INTEGER NOT NULL REFERENCES company(company_id),
              rank INTEGER,
              since TEXT,
              first_name TEXT,
              middle_name TEXT,
              last_name TEXT,
              age INTEGER,
              title TEXT
            );
            """,
            """
            CREATE TABLE IF NOT EXISTS peer_companies (
              peer_id INTEGER PRIMARY KEY AUTOINCREMENT,
              company_id INTEGER NOT NULL REFERENCES company(company_id),
              ticker_id TEXT,
              name TEXT,
              pb_ratio REAL,
              pe_ratio REAL,
              market_cap REAL,
              price REAL,
              percent_change REAL,
              net_change REAL,
              roe_5yr REAL,
              roe_ttm REAL,
              debt_to_equity REAL,
              net_profit_margin_5yr REAL,
              net_profit_margin_ttm REAL,
              dividend_yield REAL,
              shares_outstanding REAL,
              rating TEXT,
              year_high REAL,
              year_low REAL
            );
            """,
            """
            CREATE TABLE IF NOT EXISTS stock_price (
              price_id INTEGER PRIMARY KEY AUTOINCREMENT,
              company_id INTEGER NOT NULL REFERENCES company(company_id),
              exchange TEXT NOT NULL,
              price REAL,
              created_at DATETIME DEFAULT CURRENT_TIMESTAMP
            );
            """,
            """
            CREATE TABLE IF NOT EXISTS stock_technical_data (
              technical_id INTEGER PRIMARY KEY AUTOINCREMENT,
              company_id INTEGER NOT NULL REFERENCES company(company_id),
              days TEXT,
              bse_price REAL,
              nse_price REAL
            );
            """,
            """
            CREATE TABLE IF NOT EXISTS financial_statements (
              statement_id INTEGER PRIMARY KEY AUTOINCREMENT,
              company_id INTEGER NOT NULL REFERENCES company(company_id),
              fiscal_year INTEGER,
              period_type TEXT,
              report_type TEXT,
              end_date DATE,
              end_year INTEGER
            );
            """,
            """
            CREATE TABLE IF NOT EXISTS financial_line_items (
              line_item_id INTEGER PRIMARY KEY AUTOINCREMENT,
              statement_id INTEGER NOT NULL REFERENCES financial_statements(statement_id),
              category TEXT NOT NULL,
              display_name TEXT,
              key_name TEXT,
              value REAL
            );
            """,
            """CREATE INDEX IF NOT EXISTS idx_officers_company ON officers(company_id);""",
            """CREATE INDEX IF NOT EXISTS idx_peers_company ON peer_companies(company_id);""",
            """CREATE INDEX IF NOT EXISTS idx_price_company ON stock_price(company_id);""",
            """CREATE INDEX IF NOT EXISTS idx_technical_company ON stock_technical_data(company_id);""",
            """CREATE INDEX IF NOT EXISTS idx_statements_company ON financial_statements(company_id);""",
            """CREATE INDEX IF NOT EXISTS idx_line_items_statement ON financial_line_items(statement_id);""",
        ]
        with self._engine.begin() as conn:
            for statement in ddl:
                conn.execute(text(statement))

    # ----------------
    # Snapshot ingest
    # ----------------
    def save_market_snapshot(self, snapshot: MarketSnapshot) -> int:
        """Persist a full company snapshot in one transaction and return the new company id."""
        with self._engine.begin() as conn:
            company_id = self._insert_company(conn, snapshot.company)

            officers = [
                {
                    "company_id": company_id,
                    "rank": o.rank,
                    "since": o.since,
                    "first_name": o.first_name,
                    "middle_name": o.middle_name,
                    "last_name": o.last_name,
                    "age": o.age,
                    "title": o.title,
                }
                for o in snapshot.officers
            ]
            if officers:
                conn.execute(
                    text(
                        """
                        INSERT INTO officers (company_id, rank, since, first_name, middle_name, last_name, age, title)
                        VALUES (:company_id, :rank, :since, :first_name, :middle_name, :last_name, :age, :title)
                        """
                    ),
                    officers,
                )

            peers = [{"company_id": company_id, **asdict(peer)} for peer in snapshot.peers]
            if peers:
                columns = ", ".join(_PEER_COLUMNS)
                values = ", ".join(f":{c}" for c in _PEER_COLUMNS)
                conn.execute(
                    text(f"INSERT INTO peer_companies (company_id, {columns}) VALUES (:company_id, {values})"),
                    peers,
                )

            prices = [{"company_id": company_id, "exchange": q.exchange, "price": q.price} for q in snapshot.prices]
            if prices:
                conn.execute(
                    text("INSERT INTO stock_price (company_id, exchange, price) VALUES (:company_id, :exchange, :price)"),
                    prices,
                )

            technicals = [
                {"company_id": company_id, "days": t.days, "bse_price": t.bse_price, "nse_price": t.nse_price}
                for t in snapshot.technicals
            ]
            if technicals:
                conn.execute(
                    text(
                        """
                        INSERT INTO stock_technical_data (company_id, days, bse_price, nse_price)
                        VALUES (:company_id, :days, :bse_price, :nse_price)
                        """
                    ),
                    technicals,
                )

            for statement in snapshot.statements:
                self._insert_statement(conn, company_id, statement)

        logger.info(
            "Saved snapshot for %s (company_id=%s, %d statements)",
            snapshot.company.name,
            company_id,
            len(snapshot.statements),
        )
        return company_id

    def _insert_company(self, conn: Connection, company: Company) -> int:
        columns = ", ".join(_COMPANY_COLUMNS)
        values = ", ".join(f":{c}" for c in _COMPANY_COLUMNS)
        params = {c: getattr(company, c) for c in _COMPANY_COLUMNS}
        result = conn.execute(text(f"INSERT INTO company ({columns}) VALUES ({values})"), params)
        return int(result.lastrowid)

    def _insert_statement(self, conn: Connection, company_id: int, statement: Statement) -> int:
        result = conn.execute(
            text(
                """
                INSERT INTO financial_statements (company_id, fiscal_year, period_type, report_type, end_date, end_year)
                VALUES (:company_id, :fiscal_year, :period_type, :report_type, NULL, :end_year)
                """
            ),
            {
                "company_id": company_id,
                "fiscal_year": statement.fiscal_year,
                "period_type": statement.period_type,
                "report_type": statement.report_type,
                "end_year": statement.end_year,
            },
        )
        statement_id = int(result.lastrowid)
        rows = [
            {
                "statement_id": statement_id,
                "category": category.value,
                "display_name": item.display_name,
                "key_name": item.key_name,
                "value": item.value,
            }
            for category in StatementCategory
            for item in statement.items_for(category)
        ]
        if rows:
            conn.execute(
                text(
                    """
                    INSERT INTO financial_line_items (statement_id, category, display_name, key_name, value)
                    VALUES (:statement_id, :category, :display_name, :key_name, :value)
                    """
                ),
                rows,
            )
        return statement_id

    # ---------------
    # Valuation reads
    # ---------------
    def find_company_by_name(self, name: str) -> Optional[Company]:
        """Case-insensitive substring lookup; the earliest stored match wins."""
        query = text(
            """
            SELECT * FROM company
            WHERE LOWER(name) LIKE LOWER(:pattern)
            ORDER BY company_id
            LIMIT 1
            """
        )
        with self._engine.connect() as conn:
            row = conn.execute(query, {"pattern": f"%{name}%"}).mappings().first()
        if row is None:
            return None
        return Company(company_id=row["company_id"], **{c: row[c] for c in _COMPANY_COLUMNS})

    def fetch_peer(self, company_id: int) -> Optional[PeerComparison]:
        """First peer row stored for the company (the company itself in upstream data)."""
        query = text("SELECT * FROM peer_companies WHERE company_id = :company_id ORDER BY peer_id LIMIT 1")
        with self._engine.connect() as conn:
            row = conn.execute(query, {"company_id": company_id}).mappings().first()
        if row is None:
            return None
        return PeerComparison(**{c: row[c] for c in _PEER_COLUMNS})

    def fetch_latest_price(self, company_id: int) -> Optional[float]:
        query = text(
            """
            SELECT price FROM stock_price
            WHERE company_id = :company_id AND price IS NOT NULL
            ORDER BY created_at DESC, price_id DESC
            LIMIT 1
            """
        )
        with self._engine.connect() as conn:
            value = conn.execute(query, {"company_id": company_id}).scalar()
        return float(value) if value is not None else None

    def fetch_statements(self, company_id: int, *, limit: Optional[int] = None) -> List[Statement]:
        """Statements with their line items, most recent fiscal year first."""
        limit_clause = f" LIMIT {int(limit)}" if limit is not None else ""
        query = text(
            f"""
            SELECT statement_id, fiscal_year, end_year, period_type, report_type
            FROM financial_statements
            WHERE company_id = :company_id
            ORDER BY fiscal_year DESC NULLS LAST, statement_id
            {limit_clause}
            """
        )
        with self._engine.connect() as conn:
            headers = [dict(r) for r in conn.execute(query, {"company_id": company_id}).mappings()]
            items = self._fetch_line_items(conn, [h["statement_id"] for h in headers])
        return [
            Statement(
                line_items=tuple(_line_item_from_row(r) for r in items.get(h["statement_id"], [])),
                fiscal_year=h["fiscal_year"],
                end_year=h["end_year"],
                period_type=h["period_type"],
                report_type=h["report_type"],
                statement_id=h["statement_id"],
            )
            for h in headers
        ]

    def _fetch_line_items(self, conn: Connection, statement_ids: Iterable[int]) -> Dict[int, List[Dict[str, Any]]]:
        ids = list(statement_ids)
        if not ids:
            return {}
        query = text(
            """
            SELECT statement_id, category, display_name, key_name, value
            FROM financial_line_items
            WHERE statement_id IN :ids
            ORDER BY line_item_id
            """
        ).bindparams(bindparam("ids", expanding=True))
        grouped: Dict[int, List[Dict[str, Any]]] = {}
        for row in conn.execute(query, {"ids": ids}).mappings():
            grouped.setdefault(row["statement_id"], []).append(dict(row))
        return grouped

    # ---------------------
    # Full company profile
    # ---------------------
    def fetch_company_profile(self, name: str) -> Optional[Dict[str, Any]]:
        """Company with officers, peers, prices, technicals and every statement."""
        company = self.find_company_by_name(name)
        if company is None:
            return None
        params = {"company_id": company.company_id}
        with self._engine.connect() as conn:
            officers = _rows(conn, "SELECT * FROM officers WHERE company_id = :company_id ORDER BY officer_id", params)
            peers = _rows(conn, "SELECT * FROM peer_companies WHERE company_id = :company_id ORDER BY peer_id", params)
            prices = _rows(
                conn,
                "SELECT * FROM stock_price WHERE company_id = :company_id ORDER BY created_at DESC, price_id DESC",
                params,
            )
            technical = _rows(
                conn, "SELECT * FROM stock_technical_data WHERE company_id = :company_id ORDER BY technical_id", params
            )
            statements = _rows(
                conn, "SELECT * FROM financial_statements WHERE company_id = :company_id ORDER BY statement_id", params
            )
            items = self._fetch_line_items(conn, [s["statement_id"] for s in statements])
        for statement in statements:
            statement["line_items"] = [
                {k: v for k, v in row.items() if k != "statement_id"}
                for row in items.get(statement["statement_id"], [])
            ]
        return {
            "company": asdict(company),
            "officers": officers,
            "peers": peers,
            "prices": prices,
            "technical": technical,
            "financialStatements": statements,
        }


def _rows(conn: Connection, sql: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
    return [dict(r) for r in conn.execute(text(sql), params).mappings()]


def _line_item_from_row(row: Dict[str, Any]) -> LineItem:
    return LineItem(
        category=StatementCategory(row["category"]),
        display_name=row["display_name"],
        key_name=row["key_name"],
        value=row["value"],
    )

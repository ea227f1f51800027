"""
Shared fixtures: an in-memory stand-in for the car wash REST API.

`FakeCarWashApi` answers the same paths as the real API and enforces the
constraints the server does (unique Cedula and Placa, clients with vehicles
cannot be deleted). Any call can be made to fail with `fail(...)`, or
to succeed with a different body with `answer_with(...)`.
"""

from __future__ import annotations

import copy
import itertools
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Callable
from urllib.parse import unquote

import pytest

from mrcarwash.domains.errors import ConflictError, NotFoundError, ValidationError
from mrcarwash.infrastructure.repositories import Repositories, build_repositories

FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

_NATURAL_KEYS = {"clientes": "Cedula", "vehiculos": "Placa"}
_TABLES = (
    "clientes",
    "vehiculos",
    "tarifas_parking",
    "servicios_car_wash",
    "facturas_car_wash",
    "facturas_parking",
)


class FakeCarWashApi:
    def __init__(self) -> None:
        self.tables: dict[str, dict[Any, dict[str, Any]]] = {t: {} for t in _TABLES}
        self.assignments: dict[str, list[dict[str, Any]]] = defaultdict(list)
        self.calls: list[tuple[str, str, Any]] = []
        self._failures: list[dict[str, Any]] = []
        self._answers: list[dict[str, Any]] = []
        self._ids: dict[str, itertools.count] = defaultdict(lambda: itertools.count(1))

    # --- test helpers ---

    def fail(
        self,
        method: str,
        path: str,
        error: Exception,
        times: int = 1,
        when: Callable[[Any], bool] | None = None,
    ) -> None:
        """Raise `error` on the next `times` matching calls (-1 for always)."""
        self._failures.append(
            {"method": method, "path": path, "error": error, "times": times, "when": when}
        )

    def answer_with(self, method: str, path: str, body: Any, times: int = 1) -> None:
        """Carry out the next `times` matching calls but answer with `body`."""
        self._answers.append({"method": method, "path": path, "body": body, "times": times})

    def calls_to(self, method: str, path: str) -> list[Any]:
        return [payload for m, p, payload in self.calls if m == method and p == path]

    def seed(self, table: str, record: dict[str, Any]) -> dict[str, Any]:
        key_field = _NATURAL_KEYS.get(table)
        if key_field is None:
            record = {"id": next(self._ids[table]), **record}
            key = record["id"]
        else:
            key = record[key_field]
        self.tables[table][key] = record
        return record

    # --- HTTP surface used by the repositories ---

    def get(self, path: str) -> Any:
        return self.request("GET", path)

    def post(self, path: str, payload: Any) -> Any:
        return self.request("POST", path, payload)

    def put(self, path: str, payload: Any) -> Any:
        return self.request("PUT", path, payload)

    def delete(self, path: str) -> Any:
        return self.request("DELETE", path)

    def request(self, method: str, path: str, payload: Any = None) -> Any:
        method = method.upper()
        self.calls.append((method, path, copy.deepcopy(payload)))
        self._maybe_fail(method, path, payload)
        parts = [unquote(p) for p in path.strip("/").split("/")]
        if len(parts) >= 3 and parts[0] == "vehiculos" and parts[2] == "servicios":
            result = self._assignment_route(method, parts, payload)
        elif len(parts) == 1:
            result = self._collection_route(method, parts[0], payload)
        else:
            result = self._item_route(method, parts[0], parts[1], payload)
        return self._answer_for(method, path, result)

    def _answer_for(self, method: str, path: str, result: Any) -> Any:
        for a in self._answers:
            if a["method"] == method and a["path"] == path and a["times"] != 0:
                if a["times"] > 0:
                    a["times"] -= 1
                return copy.deepcopy(a["body"])
        return copy.deepcopy(result)

    def _maybe_fail(self, method: str, path: str, payload: Any) -> None:
        for f in self._failures:
            if f["method"] != method or f["path"] != path or f["times"] == 0:
                continue
            if f["when"] is not None and not f["when"](payload):
                continue
            if f["times"] > 0:
                f["times"] -= 1
            raise f["error"]

    def _table(self, name: str) -> dict[Any, dict[str, Any]]:
        if name not in self.tables:
            raise NotFoundError(f"Unknown resource {name}", status_code=404)
        return self.tables[name]

    def _collection_route(self, method: str, name: str, payload: Any) -> Any:
        table = self._table(name)
        if method == "GET":
            return list(table.values())
        if method != "POST":
            raise ValidationError(f"{method} not allowed on {name}", status_code=405)
        key_field = _NATURAL_KEYS.get(name)
        if key_field is not None:
            key = payload[key_field]
            if key in table:
                raise ValidationError(f"{key_field} {key} ya existe", status_code=400)
            if name == "vehiculos" and payload.get("Cedula_Cliente") not in self.tables["clientes"]:
                raise ValidationError("El cliente no existe", status_code=400)
            record = dict(payload)
        else:
            record = {"id": next(self._ids[name]), **payload}
            key = record["id"]
        table[key] = record
        return record

    def _item_route(self, method: str, name: str, raw_key: str, payload: Any) -> Any:
        table = self._table(name)
        key: Any = raw_key if name == "vehiculos" else int(raw_key)
        if key not in table:
            raise NotFoundError(f"{name} {raw_key} no encontrado", status_code=404)
        if method == "GET":
            return table[key]
        if method == "PUT":
            table[key] = {**table[key], **payload}
            return table[key]
        if method == "DELETE":
            if name == "clientes" and any(
                v.get("Cedula_Cliente") == key for v in self.tables["vehiculos"].values()
            ):
                raise ConflictError("El cliente tiene vehículos asociados", status_code=409)
            del table[key]
            if name == "vehiculos":
                self.assignments.pop(key, None)
            return None
        raise ValidationError(f"{method} not allowed on {name}/{raw_key}", status_code=405)

    def _assignment_route(self, method: str, parts: list[str], payload: Any) -> Any:
        plate = parts[1]
        if plate not in self.tables["vehiculos"]:
            raise NotFoundError(f"Vehículo {plate} no encontrado", status_code=404)
        items = self.assignments[plate]
        if len(parts) == 3:
            if method == "GET":
                return list(items)
            if method == "POST":
                if payload["Servicio_id"] not in self.tables["servicios_car_wash"]:
                    raise ValidationError("El servicio no existe", status_code=400)
                record = {
                    "id": next(self._ids["asignaciones"]),
                    "Placa_Vehiculo": plate,
                    "Facturado": False,
                    **payload,
                }
                items.append(record)
                return record
        elif method == "PUT":
            wanted = int(parts[3])
            for record in items:
                if record["id"] == wanted:
                    record.update(payload)
                    return record
            raise NotFoundError(f"Asignación {wanted} no encontrada", status_code=404)
        raise ValidationError(f"{method} not allowed on {'/'.join(parts)}", status_code=405)


def seed_catalog(api: FakeCarWashApi) -> FakeCarWashApi:
    """One client owning one vehicle, two services and one parking tariff."""
    api.seed("clientes", {"Cedula": 1001, "Nombre": "Ana Pérez", "Telefono": "555-0101", "Direccion": "Calle 1"})
    api.seed("vehiculos", {"Placa": "ABC123", "Marca": "Toyota", "Modelo": "Corolla", "Color": "Rojo", "Cedula_Cliente": 1001})
    api.seed("servicios_car_wash", {"Nombre": "Wash", "Descripcion": "Lavado exterior", "Tarifa": 10})
    api.seed("servicios_car_wash", {"Nombre": "Wax", "Descripcion": "Encerado", "Tarifa": 15})
    api.seed("tarifas_parking", {"Tipo_Vehiculo": "Carro", "Hora": 2, "Fraccion": 1})
    return api


@pytest.fixture
def empty_api() -> FakeCarWashApi:
    return FakeCarWashApi()


@pytest.fixture
def api() -> FakeCarWashApi:
    return seed_catalog(FakeCarWashApi())


@pytest.fixture
def repos(api: FakeCarWashApi) -> Repositories:
    return build_repositories(api)


@pytest.fixture
def clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW

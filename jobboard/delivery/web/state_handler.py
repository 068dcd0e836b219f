"""HTTP routes driving the client stores (the UI event handlers)."""
import logging
import uuid
from collections import OrderedDict
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel, Field

from jobboard.delivery.notifiers import MemoryNotifier, celebrate
from jobboard.domain import SavedJobsSnapshot
from jobboard.errors import JobBoardError
from jobboard.filters import BrowseSession
from jobboard.ingest.search import JobSearchService, LocationSuggester
from jobboard.models import JobFiltersState, JobRecord, SALARY_CEILING, SALARY_FLOOR
from jobboard.state import LocalStateManager

logger = logging.getLogger(__name__)

MAX_UNDO_SNAPSHOTS = 20


class JobPayload(BaseModel):
    id: Optional[str] = None
    title: Optional[str] = None
    company: Optional[str] = None
    location: Optional[str] = None
    type: Optional[str] = None
    salary: Optional[str] = None
    description: Optional[str] = None
    url: Optional[str] = None
    source: Optional[str] = None

    def to_record(self) -> JobRecord:
        return JobRecord.from_dict(self.model_dump(exclude_none=True))


class ToggleRequest(BaseModel):
    job_id: Optional[str] = None
    job: Optional[JobPayload] = None


class UndoRequest(BaseModel):
    undo_token: str


class LocationInput(BaseModel):
    text: str = ''


class FiltersPayload(BaseModel):
    salaryRange: List[int] = Field(default_factory=lambda: [SALARY_FLOOR, SALARY_CEILING])
    jobTypes: List[str] = Field(default_factory=list)
    workMode: List[str] = Field(default_factory=list)
    experienceLevel: List[str] = Field(default_factory=list)


class SaveSearchRequest(BaseModel):
    name: str
    query: str = ''
    location: str = ''
    filters: FiltersPayload = Field(default_factory=FiltersPayload)
    notifyOnNew: bool = False


def _jobs(records: List[JobRecord]) -> List[Dict[str, Any]]:
    return [record.to_dict() for record in records]


class StateWebHandler:
    """Registers the state routes on a FastAPI app.

    Route handlers are coroutines, so they run one at a time on the event
    loop and store mutations never interleave.
    """

    def __init__(
        self,
        app: FastAPI,
        manager: LocalStateManager,
        search_service: Optional[JobSearchService] = None,
        suggester: Optional[LocationSuggester] = None,
    ):
        """Initialize the handler.

        Args:
            app: FastAPI application instance
            manager: Client state to expose
            search_service: Source of browse results; browsing is disabled without it
            suggester: Debounced location lookup behind the location input
        """
        self.app = app
        self.manager = manager
        self.search_service = search_service
        self.suggester = suggester
        self.notifier = MemoryNotifier()
        self.session = BrowseSession(page_size=manager.settings.page_size)
        self._undo: "OrderedDict[str, SavedJobsSnapshot]" = OrderedDict()
        self._setup_routes()

    def _remember(self, snapshot: SavedJobsSnapshot) -> str:
        token = uuid.uuid4().hex
        self._undo[token] = snapshot
        while len(self._undo) > MAX_UNDO_SNAPSHOTS:
            self._undo.popitem(last=False)
        return token

    def _toasts(self) -> List[Dict[str, Any]]:
        return [
            {'level': n.level, 'message': n.message, 'action': n.action}
            for n in self.notifier.drain()
        ]

    def _setup_routes(self):
        app = self.app
        manager = self.manager

        @app.get("/saved")
        async def list_saved():
            return {'count': manager.saved.count, 'jobs': _jobs(manager.saved.records())}

        @app.post("/saved/toggle")
        async def toggle_saved(request: ToggleRequest):
            record = request.job.to_record() if request.job else None
            job_id = request.job_id or (record.id if record else None)
            if not job_id:
                raise HTTPException(status_code=400, detail="job_id or job is required")
            try:
                result = manager.saved.toggle(job_id, record)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))

            title = (record.title if record else None) or (
                result.snapshot.records_dict().get(job_id).title if result.was_saved else None
            )
            token = self._remember(result.snapshot)
            if result.was_saved:
                self.notifier.info(f'Removed "{title}"' if title else "Job removed from saved", action="Undo")
            elif result.milestone:
                self.notifier.success(celebrate(result.milestone))
            else:
                self.notifier.success(f'Saved "{title}"' if title else "Job saved!", action="Undo")
            return {
                'job_id': job_id,
                'saved': result.is_saved,
                'count': manager.saved.count,
                'milestone': result.milestone,
                'undo_token': token,
                'notifications': self._toasts(),
            }

        @app.post("/saved/undo")
        async def undo_saved(request: UndoRequest):
            snapshot = self._undo.pop(request.undo_token, None)
            if snapshot is None:
                raise HTTPException(status_code=404, detail="Nothing to undo")
            manager.saved.restore(snapshot)
            return {'count': manager.saved.count, 'ids': manager.saved.ids()}

        @app.delete("/saved")
        async def clear_saved():
            manager.saved.clear_all()
            return {'count': 0}

        @app.get("/recent")
        async def list_recent():
            return {'jobs': _jobs(manager.recent.items())}

        @app.post("/recent")
        async def record_view(job: JobPayload):
            manager.recent.record_view(job.to_record())
            return {'jobs': _jobs(manager.recent.items())}

        @app.delete("/recent/{job_id}")
        async def remove_recent(job_id: str):
            if not manager.recent.remove(job_id):
                raise HTTPException(status_code=404, detail="Job not in recently viewed")
            return {'jobs': _jobs(manager.recent.items())}

        @app.delete("/recent")
        async def clear_recent():
            manager.recent.clear_all()
            return {'jobs': []}

        @app.get("/compare")
        async def list_compare():
            return {
                'jobs': _jobs(manager.compare.items()),
                'can_add_more': manager.compare.can_add_more,
            }

        @app.post("/compare")
        async def add_compare(job: JobPayload):
            result = manager.compare.add(job.to_record())
            if not result.ok:
                raise HTTPException(status_code=409, detail=result.error.message)
            return {
                'jobs': _jobs(manager.compare.items()),
                'can_add_more': manager.compare.can_add_more,
            }

        @app.delete("/compare/{job_id}")
        async def remove_compare(job_id: str):
            if not manager.compare.remove(job_id):
                raise HTTPException(status_code=404, detail="Job not in comparison")
            return {'jobs': _jobs(manager.compare.items())}

        @app.delete("/compare")
        async def clear_compare():
            manager.compare.clear_all()
            return {'jobs': []}

        @app.get("/searches/history")
        async def search_history():
            return {'history': [entry.to_dict() for entry in manager.searches.history()]}

        @app.delete("/searches/history")
        async def clear_search_history():
            manager.searches.clear_history()
            return {'history': []}

        @app.get("/searches/saved")
        async def list_saved_searches():
            return {'searches': [search.to_dict() for search in manager.searches.saved_searches()]}

        @app.post("/searches/saved")
        async def save_search(request: SaveSearchRequest):
            try:
                filters = JobFiltersState.from_dict(request.filters.model_dump())
                result = manager.searches.save_search(
                    request.name, request.query, request.location, filters, request.notifyOnNew
                )
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return {'search': result.search.to_dict(), 'duplicate_name': result.duplicate_name}

        @app.get("/searches/saved/{name}/apply")
        async def apply_saved_search(name: str):
            search = manager.searches.find_search(name)
            if search is None:
                raise HTTPException(status_code=404, detail="Saved search not found")
            applied = manager.searches.apply_search(search)
            return {'query': applied.query, 'location': applied.location, 'filters': applied.filters.to_dict()}

        @app.delete("/searches/saved/{name}")
        async def delete_saved_search(name: str):
            removed = manager.searches.delete_search(name)
            if not removed:
                raise HTTPException(status_code=404, detail="Saved search not found")
            return {'removed': removed}

        @app.get("/browse")
        async def browse(
            q: str = '',
            location: str = '',
            page: int = Query(1, ge=1),
            job_types: List[str] = Query(default=[]),
            work_mode: List[str] = Query(default=[]),
            experience: List[str] = Query(default=[]),
            salary_min: int = Query(SALARY_FLOOR, ge=0),
            salary_max: int = Query(SALARY_CEILING, ge=0),
            refresh: bool = False,
        ):
            if self.search_service is None:
                raise HTTPException(status_code=503, detail="Job search is not configured")
            try:
                filters = JobFiltersState(
                    salary_range=(salary_min, salary_max),
                    job_types=job_types,
                    work_mode=work_mode,
                    experience_level=experience,
                )
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))

            session = self.session
            new_search = q != session.query or location != session.location
            if new_search:
                manager.searches.add_search(q, location)
            criteria_changed = new_search or filters != session.filters
            session.set_query(q)
            session.set_location(location)
            session.set_filters(filters)

            if refresh:
                session.refresh()
                results = self.search_service.refresh(q, location)
            else:
                # New criteria start over at page 1
                if not criteria_changed:
                    session.go_to(page)
                results = self.search_service.search(q, location)
            if results.error is not None:
                self.notifier.error(results.error.message)
            current = session.current_page(results.jobs)
            response = current.to_dict()
            response.update({
                'active_filters': filters.active_count,
                'stale': results.stale,
                'revalidating': results.revalidating,
                'saved_ids': [job.id for job in current.items if manager.saved.is_saved(job.id)],
                'notifications': self._toasts(),
            })
            return response

        @app.post("/locations/input")
        async def location_input(request: LocationInput):
            if self.suggester is None:
                raise HTTPException(status_code=503, detail="Location search is not configured")
            self.suggester.update(request.text)
            return {'suggestions': self.suggester.suggestions}

        @app.get("/locations/suggestions")
        async def location_suggestions():
            if self.suggester is None:
                raise HTTPException(status_code=503, detail="Location search is not configured")
            return {'suggestions': self.suggester.suggestions}

        @app.post("/sync")
        async def sync():
            try:
                changed = manager.sync()
            except JobBoardError as e:
                raise HTTPException(status_code=503, detail=e.message)
            return {'changed': changed}

        @app.get("/health")
        async def health():
            return {
                'status': 'ok',
                'saved': manager.saved.count,
                'recent': len(manager.recent),
                'compare': manager.compare.count,
            }

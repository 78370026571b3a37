"""GetSellerList paging shared by the item resolver and the listing search."""
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, List

from pydantic import BaseModel, Field

from api.xml_codec import as_list


CALL_NAME = "GetSellerList"


def format_timestamp(moment: datetime) -> str:
    """Format as ISO-8601 UTC with milliseconds, e.g. 2024-05-01T12:00:00.000Z."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def has_more_items(response: Dict[str, Any]) -> bool:
    """HasMoreItems arrives as the string "true" or as a boolean."""
    value = response.get("HasMoreItems")
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() == "true"


class SellerListPage(BaseModel):
    """One page of GetSellerList results."""
    page_number: int
    items: List[Dict[str, Any]] = Field(default_factory=list)
    has_more: bool = False


class SellerListPager:
    """
    Walks GetSellerList pages sequentially.

    The next page is requested only after the consumer has handled the
    current one; breaking out of the iteration stops the paging.
    """

    def __init__(self, client, logger):
        self.client = client
        self.logger = logger

    async def iter_pages(
        self,
        base_params: Dict[str, Any],
        page_size: int,
        max_pages: int
    ) -> AsyncIterator[SellerListPage]:
        """
        Yield pages until HasMoreItems is not true or ``max_pages`` is reached.

        Args:
            base_params: Filters shared by every page request
            page_size: EntriesPerPage
            max_pages: Upper bound on pages fetched

        Raises:
            TradingApiError: Any page failed; no partial results are returned
        """
        for page_number in range(1, max_pages + 1):
            params = dict(base_params)
            params["Pagination"] = {
                "EntriesPerPage": page_size,
                "PageNumber": page_number,
            }

            response = await self.client.execute(CALL_NAME, params)

            item_array = response.get("ItemArray") or {}
            items = [
                item for item in as_list(item_array.get("Item"))
                if isinstance(item, dict)
            ]
            more = has_more_items(response)

            self.logger.debug(
                "Seller list page fetched",
                page_number=page_number,
                item_count=len(items),
                has_more=more
            )

            yield SellerListPage(page_number=page_number, items=items, has_more=more)

            if not more:
                return

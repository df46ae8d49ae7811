"""
Quote and logo storage on Dropbox.

Persisted layout:
    /dtf-quotes/{sanitized_name}_{id}.html           rendered quote
    /dtf-quotes/{id}_metadata.json                   quote metadata
    /customer_logos/{customer_id}/logo_metadata.json logo metadata
    /customer_logos/{customer_id}/{filename}         logo binary

Uploads always overwrite, so the last save of an id wins. Saves of the same id
are not serialized against each other; concurrent saves may leave a document
and metadata pair written by different requests.
"""

import asyncio
import json
import logging
import re
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Union

from dtf_backend.audit import record_operation
from dtf_backend.dropbox_client import DropboxClient
from dtf_backend.exceptions import ConfigurationError, NotFoundError, RemoteOperationError, RenderError, TokenRefreshError
from dtf_backend.metrics import StorageMetrics
from dtf_backend.models import QuoteListing, QuoteRecord
from dtf_backend.quote_renderer import render_quote_html

QUOTES_FOLDER = "/dtf-quotes"
LOGOS_FOLDER = "/customer_logos"
METADATA_SUFFIX = "_metadata.json"
LOGO_METADATA_FILE = "logo_metadata.json"

QUOTE_FORMATS = ("json", "html")

_EPOCH_MIN = datetime.min.replace(tzinfo=timezone.utc)


def sanitize_name(name: str) -> str:
    """Replace every character outside [A-Za-z0-9] with an underscore."""
    return re.sub(r"[^a-zA-Z0-9]", "_", name)


def quote_document_path(record: QuoteRecord) -> str:
    """
    Raises:
        RenderError: If the record has no usable quote_name
    """
    if not isinstance(record.quote_name, str) or not record.quote_name:
        raise RenderError("Quote record has no quote_name", {"quote_id": record.id})
    return f"{QUOTES_FOLDER}/{sanitize_name(record.quote_name)}_{record.id}.html"


def quote_metadata_path(quote_id: Any) -> str:
    return f"{QUOTES_FOLDER}/{quote_id}{METADATA_SUFFIX}"


def logo_metadata_path(customer_id: Any) -> str:
    return f"{LOGOS_FOLDER}/{customer_id}/{LOGO_METADATA_FILE}"


def logo_file_path(customer_id: Any, filename: str) -> str:
    return f"{LOGOS_FOLDER}/{customer_id}/{filename}"


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _parse_created(value: Any) -> datetime:
    """
    Parse a quote's date_created for sorting.

    Accepts ISO 8601 strings (a trailing ``Z`` included) and epoch numbers in
    seconds or milliseconds. Anything unparseable sorts as oldest.
    """
    if isinstance(value, bool):
        return _EPOCH_MIN
    if isinstance(value, (int, float)):
        seconds = value / 1000 if value > 1e11 else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return _EPOCH_MIN
    if isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return _EPOCH_MIN
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    return _EPOCH_MIN


class StorageGateway:
    """Save, load, list and delete quotes and customer logos."""

    def __init__(
        self,
        client: DropboxClient,
        metrics: Optional[StorageMetrics] = None,
        renderer: Callable[[QuoteRecord], str] = render_quote_html,
    ):
        """
        Args:
            client: Dropbox client used for every remote call
            metrics: Optional metrics collector
            renderer: Function turning a QuoteRecord into HTML
        """
        self.client = client
        self.metrics = metrics
        self.renderer = renderer
        self.logger = logging.getLogger(__name__)

    # ===== QUOTES =====

    async def save_quote(self, quote: Union[QuoteRecord, Dict[str, Any]], is_update: bool = False) -> Dict[str, Any]:
        """
        Render and store a quote with its metadata, then try to share it.

        Args:
            quote: QuoteRecord or raw quote dictionary
            is_update: Only changes the returned message

        Returns:
            Envelope with success, message, quote_id, file_path,
            download_url (None if sharing failed) and metadata

        Raises:
            ValueError: If the quote has no id
            RenderError: If the quote cannot be rendered
            TokenRefreshError: If no access token could be obtained
            RemoteOperationError: If an upload failed
        """
        record = quote if isinstance(quote, QuoteRecord) else QuoteRecord.from_dict(quote)
        operation = "update_quote" if is_update else "save_quote"

        try:
            file_path = quote_document_path(record)
            html_content = self.renderer(record)

            await self.client.upload(file_path, html_content)

            metadata = record.to_metadata(file_path, _utc_timestamp())
            self.logger.info(
                f"Saving quote metadata: id={record.id}, customer_id={record.customer_id}, "
                f"data_keys={sorted(record.data) if isinstance(record.data, dict) else []}"
            )
            await self.client.upload(quote_metadata_path(record.id), json.dumps(metadata, indent=2))
        except Exception as e:
            record_operation(operation, str(record.id), success=False, error=str(e))
            raise

        download_url = await self._try_create_shared_link(file_path)
        record_operation(operation, str(record.id), success=True)

        return {
            "success": True,
            "message": "Quote updated successfully" if is_update else "Quote saved successfully",
            "quote_id": record.id,
            "file_path": file_path,
            "download_url": download_url,
            "metadata": metadata,
        }

    async def _try_create_shared_link(self, file_path: str) -> Optional[str]:
        try:
            return await self.client.create_shared_link(file_path)
        except (RemoteOperationError, NotFoundError) as e:
            self.logger.warning(f"Could not create shared link for '{file_path}': {e}")
            if self.metrics:
                self.metrics.record_share_link_failure()
            return None

    async def load_quote(self, quote_id: Any, format: str = "json") -> Union[Dict[str, Any], str]:
        """
        Load a quote's metadata, or its rendered HTML.

        Args:
            quote_id: Quote identifier
            format: "json" for the metadata dictionary, "html" for the document text

        Raises:
            ValueError: For an unknown format
            NotFoundError: If the quote (or its document) does not exist
        """
        if format not in QUOTE_FORMATS:
            raise ValueError(f"Unsupported quote format: {format}. Must be one of {', '.join(QUOTE_FORMATS)}")

        metadata = await self._read_json(quote_metadata_path(quote_id), f"Quote {quote_id} not found")
        if format == "json":
            return metadata

        file_path = metadata.get("file_path")
        if not file_path:
            raise NotFoundError(f"Quote {quote_id} has no rendered document")
        try:
            return await self.client.download_text(file_path)
        except NotFoundError as e:
            raise NotFoundError(f"Rendered document for quote {quote_id} not found", path=file_path) from e

    async def load_customer_quotes(self, customer_id: Any) -> QuoteListing:
        """
        List a customer's quotes, newest first.

        Unreadable metadata files are skipped and a failed folder scan yields an
        empty listing; both set ``degraded`` on the result. A missing quotes
        folder means no quote was ever saved and is not degraded.

        Raises:
            TokenRefreshError, ConfigurationError: If no access token could be obtained
        """
        try:
            entries = await self.client.list_folder(QUOTES_FOLDER)
        except NotFoundError:
            self.logger.info(f"Quotes folder {QUOTES_FOLDER} does not exist yet")
            return QuoteListing()
        except RemoteOperationError as e:
            self.logger.error(f"Error scanning Dropbox for quotes: {e}")
            listing = QuoteListing(degraded=True)
            self._record_listing(listing)
            return listing

        metadata_files = [entry for entry in entries if entry.name.endswith(METADATA_SUFFIX)]
        results = await asyncio.gather(
            *(self._read_quote_metadata(entry.path_lower) for entry in metadata_files),
            return_exceptions=True,
        )

        quotes: List[Dict[str, Any]] = []
        skipped = 0
        for entry, result in zip(metadata_files, results):
            if isinstance(result, (TokenRefreshError, ConfigurationError, asyncio.CancelledError)):
                raise result
            if isinstance(result, Exception):
                self.logger.warning(f"Could not load metadata file {entry.name}: {result}")
                skipped += 1
                continue
            owner = result.get("customer_id")
            if owner is not None and str(owner) == str(customer_id):
                quotes.append(result)

        quotes.sort(key=lambda quote: _parse_created(quote.get("date_created")), reverse=True)

        listing = QuoteListing(quotes=quotes, degraded=skipped > 0, skipped_count=skipped)
        self._record_listing(listing)
        return listing

    async def _read_quote_metadata(self, path: str) -> Dict[str, Any]:
        metadata = json.loads(await self.client.download_text(path))
        if not isinstance(metadata, dict):
            raise ValueError(f"Metadata in {path} is not an object")
        return metadata

    def _record_listing(self, listing: QuoteListing) -> None:
        if self.metrics:
            self.metrics.record_listing(listing.skipped_count, listing.degraded)

    async def delete_quote(self, quote_id: Any, customer_id: Optional[Any] = None) -> Dict[str, Any]:
        """
        Delete a quote's rendered document, then its metadata.

        There is no rollback: if the metadata delete fails after the document
        was removed, the metadata stays behind. A later delete of the same id
        treats the missing document as already deleted and removes the
        metadata.

        Args:
            quote_id: Quote identifier
            customer_id: If given, the quote must belong to this customer

        Raises:
            NotFoundError: If the quote does not exist (or belongs to someone
                else); nothing is deleted in that case
        """
        try:
            metadata = await self.load_quote(quote_id)
            if customer_id is not None and str(metadata.get("customer_id")) != str(customer_id):
                raise NotFoundError(f"Quote {quote_id} not found for customer {customer_id}")

            file_path = metadata.get("file_path")
            if file_path:
                try:
                    await self.client.delete(file_path)
                except NotFoundError:
                    self.logger.warning(f"Rendered document already missing for quote {quote_id}: {file_path}")
            else:
                self.logger.warning(f"Quote {quote_id} metadata has no file_path")

            await self.client.delete(quote_metadata_path(quote_id))
        except Exception as e:
            record_operation("delete_quote", str(quote_id), success=False, error=str(e))
            raise

        record_operation("delete_quote", str(quote_id), success=True)
        return {
            "success": True,
            "message": "Quote deleted successfully",
            "deleted_quote_id": quote_id,
        }

    # ===== LOGOS =====

    async def save_customer_logo(
        self, customer_id: Any, logo_data: Dict[str, Any], content: Optional[bytes] = None
    ) -> Dict[str, Any]:
        """
        Store a customer's logo metadata, replacing any previous one.

        Args:
            customer_id: Customer identifier
            logo_data: Metadata dictionary; ``filename`` names the logo binary
            content: Optional logo bytes, uploaded before the metadata

        Returns:
            The stored logo metadata

        Raises:
            ValueError: If logo_data is not a dictionary, or content is given without a filename
        """
        if not isinstance(logo_data, dict):
            raise ValueError("Logo data must be an object")
        if content is not None and not logo_data.get("filename"):
            raise ValueError("Logo data needs a filename when content is uploaded")

        try:
            if content is not None:
                await self.client.upload(logo_file_path(customer_id, logo_data["filename"]), content)
            await self.client.upload(logo_metadata_path(customer_id), json.dumps(logo_data, indent=2))
        except Exception as e:
            record_operation("save_logo", str(customer_id), success=False, error=str(e))
            raise

        record_operation("save_logo", str(customer_id), success=True)
        return logo_data

    async def load_customer_logo(self, customer_id: Any) -> Optional[Dict[str, Any]]:
        """Return the customer's logo metadata, or None if no logo is saved."""
        try:
            return await self._read_json(logo_metadata_path(customer_id), f"No logo for customer {customer_id}")
        except NotFoundError:
            return None

    async def delete_customer_logo(self, customer_id: Any) -> Dict[str, Any]:
        """
        Delete a customer's logo binary, then its metadata.

        Succeeds without doing anything if the customer has no logo.
        """
        try:
            logo_data = await self.load_customer_logo(customer_id)
            if logo_data is not None:
                filename = logo_data.get("filename")
                if filename:
                    try:
                        await self.client.delete(logo_file_path(customer_id, filename))
                    except NotFoundError:
                        self.logger.warning(f"Logo file already missing for customer {customer_id}: {filename}")
                else:
                    self.logger.warning(f"Logo metadata for customer {customer_id} has no filename")

                await self.client.delete(logo_metadata_path(customer_id))
        except Exception as e:
            record_operation("delete_logo", str(customer_id), success=False, error=str(e))
            raise

        record_operation("delete_logo", str(customer_id), success=True)
        return {"success": True, "message": "Logo deleted successfully"}

    # ===== HELPERS =====

    async def _read_json(self, path: str, not_found_message: str) -> Dict[str, Any]:
        """
        Download and parse a JSON metadata document.

        Raises:
            NotFoundError: With ``not_found_message`` if the file does not exist
            RemoteOperationError: If the file is not a JSON object
        """
        try:
            content = await self.client.download_text(path)
        except NotFoundError as e:
            raise NotFoundError(not_found_message, path=path) from e

        try:
            parsed = json.loads(content)
        except ValueError as e:
            raise RemoteOperationError("metadata parse", path, upstream_detail=str(e)) from e
        if not isinstance(parsed, dict):
            raise RemoteOperationError("metadata parse", path, upstream_detail="metadata is not an object")
        return parsed

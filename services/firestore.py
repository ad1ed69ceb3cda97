from dataclasses import dataclass
from typing import List, Dict, Any, Optional

import firebase_admin
from firebase_admin import firestore as fs
from google.cloud import firestore
from google.cloud.firestore_v1 import FieldFilter


@dataclass
class WriteResult:
    """How many documents matched the filter of a write and how many were changed"""
    matched: int
    modified: int


class FirestoreDB:
    def __init__(self, app: firebase_admin.App, collection_name: str = "posts"):
        self.db = fs.client(app)
        self.collection_name = collection_name

    def collection(self):
        return self.db.collection(self.collection_name)

    @staticmethod
    def _with_id(doc) -> Dict[str, Any]:
        data = doc.to_dict()
        data["id"] = doc.id
        return data

    def insert_post(self, post_id: str, data: Dict[str, Any]) -> None:
        """Create a new post document under the given id"""
        self.collection().document(post_id).create(data)

    def get_all_posts(self) -> List[Dict[str, Any]]:
        """Get all posts sorted by creation date descending"""
        posts_ref = self.collection().order_by("createdAt", direction=firestore.Query.DESCENDING).stream()
        return [self._with_id(doc) for doc in posts_ref]

    def get_posts_by_user(self, user_id: str) -> List[Dict[str, Any]]:
        """Get a single user's posts, newest first"""
        posts_ref = self.collection().where(
            filter=FieldFilter("userId", "==", user_id)
        ).order_by(
            "createdAt", direction=firestore.Query.DESCENDING
        ).stream()
        return [self._with_id(doc) for doc in posts_ref]

    def get_post(self, post_id: str) -> Optional[Dict[str, Any]]:
        """Get a post by ID"""
        snapshot = self.collection().document(post_id).get()
        if not snapshot.exists:
            return None
        return self._with_id(snapshot)

    def update_post_fields(self, post_id: str, fields: Dict[str, Any]) -> WriteResult:
        """Overwrite top-level fields of a post"""
        post_ref = self.collection().document(post_id)
        transaction = self.db.transaction()

        @firestore.transactional
        def update_in_transaction(transaction, post_ref):
            snapshot = post_ref.get(transaction=transaction)
            if not snapshot.exists:
                return WriteResult(matched=0, modified=0)

            transaction.update(post_ref, fields)
            return WriteResult(matched=1, modified=1)

        return update_in_transaction(transaction, post_ref)

    def push_array_element(
            self,
            post_id: str,
            field: str,
            element: Dict[str, Any],
            unique_key: Optional[str] = None,
            counter: Optional[str] = None,
    ) -> WriteResult:
        """
        Append an element to an array field in a single transaction

        Args:
            post_id: The post to update
            field: The array field to append to
            element: The element to append
            unique_key: When set, the append is skipped if an element with the same value
                for this key is already present
            counter: When set, this field is rewritten to the new length of the array

        Returns:
            matched is 0 when the post doesn't exist, modified is 0 when the append was skipped
        """
        post_ref = self.collection().document(post_id)
        transaction = self.db.transaction()

        @firestore.transactional
        def push_in_transaction(transaction, post_ref):
            snapshot = post_ref.get(transaction=transaction)
            if not snapshot.exists:
                return WriteResult(matched=0, modified=0)

            items = list(snapshot.to_dict().get(field) or [])
            if unique_key and any(item.get(unique_key) == element.get(unique_key) for item in items):
                return WriteResult(matched=1, modified=0)

            items.append(element)
            updates = {field: items}
            if counter:
                updates[counter] = len(items)

            transaction.update(post_ref, updates)
            return WriteResult(matched=1, modified=1)

        return push_in_transaction(transaction, post_ref)

    def remove_array_element(
            self,
            post_id: str,
            field: str,
            key: str,
            value: Any,
            counter: Optional[str] = None,
    ) -> WriteResult:
        """
        Remove the elements of an array field whose `key` equals `value`, in a single transaction.

        The filter only matches a post that exists and holds such an element, so a result with
        matched == 0 means either the post is gone or there was nothing to remove.
        """
        post_ref = self.collection().document(post_id)
        transaction = self.db.transaction()

        @firestore.transactional
        def remove_in_transaction(transaction, post_ref):
            snapshot = post_ref.get(transaction=transaction)
            if not snapshot.exists:
                return WriteResult(matched=0, modified=0)

            items = list(snapshot.to_dict().get(field) or [])
            remaining = [item for item in items if item.get(key) != value]
            if len(remaining) == len(items):
                return WriteResult(matched=0, modified=0)

            updates = {field: remaining}
            if counter:
                updates[counter] = len(remaining)

            transaction.update(post_ref, updates)
            return WriteResult(matched=1, modified=1)

        return remove_in_transaction(transaction, post_ref)

    def delete_post(self, post_id: str) -> bool:
        """Delete a post, returning False if it didn't exist"""
        post_ref = self.collection().document(post_id)
        if not post_ref.get().exists:
            return False

        post_ref.delete()
        return True

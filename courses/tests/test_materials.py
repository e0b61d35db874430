from django.core.files.base import ContentFile
from django.core.files.storage import InMemoryStorage
from django.db import DatabaseError
from django.test import TestCase, override_settings
from unittest.mock import patch

from botocore.exceptions import ClientError

from courses import services
from courses.models import EducationMaterial
from courses.results import ErrorKind, InvalidInputError, StorageError
from courses.storage import MaterialStorage
from courses.tests import factories


class MaterialStorageTests(TestCase):
    def setUp(self):
        self.memory = InMemoryStorage()
        self.storage = MaterialStorage(self.memory)

    @override_settings(COURSES_MATERIALS_PREFIX="uploads")
    def test_keys_use_prefix_and_extension(self):
        key = self.storage.build_key("Lecture.PDF")

        self.assertTrue(key.startswith("uploads/"))
        self.assertTrue(key.endswith(".pdf"))

    def test_upload_and_delete(self):
        path = self.storage.upload_file(ContentFile(b"data", name="notes.txt"))

        self.assertTrue(self.storage.exists(path))
        self.storage.delete_file(path)
        self.assertFalse(self.storage.exists(path))

    def test_upload_requires_file(self):
        with self.assertRaises(InvalidInputError):
            self.storage.upload_file(None)

    def test_delete_requires_path(self):
        with self.assertRaises(InvalidInputError):
            self.storage.delete_file("")

    def test_s3_errors_wrapped(self):
        error = ClientError({"Error": {"Code": "AccessDenied", "Message": "denied"}}, "DeleteObject")
        with patch.object(self.memory, "delete", side_effect=error):
            with self.assertRaises(StorageError):
                self.storage.delete_file("materials/a.txt")

    def test_iter_files_walks_subdirectories(self):
        self.memory.save("materials/a.txt", ContentFile(b"a"))
        self.memory.save("materials/2024/b.txt", ContentFile(b"b"))
        self.memory.save("other/c.txt", ContentFile(b"c"))

        files = sorted(self.storage.iter_files("materials/"))

        self.assertEqual(files, ["materials/2024/b.txt", "materials/a.txt"])


class AttachMaterialTests(TestCase):
    def setUp(self):
        self.memory = InMemoryStorage()
        self.storage = MaterialStorage(self.memory)
        self.teacher = factories.create_user()
        self.group = factories.create_group()

    def _upload(self, **kwargs):
        return services.attach_material(
            ContentFile(b"slides", name="slides.pdf"),
            uploader=self.teacher,
            storage=self.storage,
            **kwargs,
        )

    def test_attach_to_group(self):
        result = self._upload(group=self.group)

        self.assertTrue(result.ok)
        material = result.data
        self.assertEqual(material.access, EducationMaterial.Access.GROUP)
        self.assertEqual(material.name, "slides.pdf")
        self.assertTrue(self.memory.exists(material.file_path))
        self.assertEqual(
            self.teacher.notifications.get().name,
            "You attached a new educational material",
        )

    def test_attach_to_course(self):
        result = self._upload(course=self.group.course, name="Syllabus")

        self.assertTrue(result.ok)
        self.assertEqual(result.data.access, EducationMaterial.Access.COURSE)
        self.assertEqual(result.data.name, "Syllabus")

    def test_owner_required(self):
        result = self._upload()

        self.assertEqual(result.error, ErrorKind.INVALID_INPUT)

    def test_both_owners_rejected(self):
        result = self._upload(course=self.group.course, group=self.group)

        self.assertEqual(result.error, ErrorKind.INVALID_INPUT)

    def test_row_failure_deletes_uploaded_file(self):
        with patch(
            "courses.services.EducationMaterial.objects.create",
            side_effect=DatabaseError("insert failed"),
        ), patch.object(self.storage, "build_key", return_value="materials/slides.pdf"):
            result = self._upload(group=self.group)

        self.assertFalse(result.ok)
        self.assertEqual(result.error, ErrorKind.DEPENDENCY_FAILURE)
        self.assertFalse(self.memory.exists("materials/slides.pdf"))

    @override_settings(COURSES_ATOMIC_COMMANDS=False)
    def test_row_failure_deletes_uploaded_file_without_transaction(self):
        with patch(
            "courses.services.EducationMaterial.objects.create",
            side_effect=DatabaseError("insert failed"),
        ), patch.object(self.storage, "build_key", return_value="materials/slides.pdf"):
            result = self._upload(group=self.group)

        self.assertFalse(result.ok)
        self.assertFalse(self.memory.exists("materials/slides.pdf"))

    def test_upload_failure(self):
        with patch.object(self.memory, "save", side_effect=OSError("disk full")):
            result = self._upload(group=self.group)

        self.assertFalse(result.ok)
        self.assertIn("disk full", result.message)
        self.assertFalse(EducationMaterial.objects.exists())


class DeleteMaterialTests(TestCase):
    def setUp(self):
        self.memory = InMemoryStorage()
        self.storage = MaterialStorage(self.memory)
        self.path = self.memory.save("materials/notes.pdf", ContentFile(b"notes"))
        self.material = factories.create_material(
            file_path=self.path, course=factories.create_course()
        )

    def test_file_and_row_removed(self):
        result = services.delete_material(self.material.pk, storage=self.storage)

        self.assertTrue(result.ok)
        self.assertFalse(self.memory.exists(self.path))
        self.assertFalse(EducationMaterial.objects.exists())

    def test_storage_failure_keeps_row(self):
        with patch.object(self.memory, "delete", side_effect=OSError("offline")):
            result = services.delete_material(self.material.pk, storage=self.storage)

        self.assertEqual(result.error, ErrorKind.DEPENDENCY_FAILURE)
        self.assertTrue(EducationMaterial.objects.filter(pk=self.material.pk).exists())

    def test_row_without_file_removed(self):
        material = factories.create_material(file_path="", course=factories.create_course())

        result = services.delete_material(material.pk, storage=self.storage)

        self.assertTrue(result.ok)
        self.assertFalse(EducationMaterial.objects.filter(pk=material.pk).exists())

"""
Tests du registre des élèves sur SQLite en mémoire.
Couverture : upsert (name, training_path), fusion email/centre, recherche par email,
migration de déduplication et sa ré-exécution.
"""

from datetime import date, datetime
from unittest.mock import MagicMock

import pytest
from sqlalchemy import func, insert, select

from cda_portal.exceptions import StorageError
from cda_portal.models.certificate import Certificate
from cda_portal.models.package import Package
from cda_portal.models.student import Student
from cda_portal.services.student_registry import (
    deduplicate_students,
    find_students_by_email,
    resolve_student,
)


# --- Helpers ---

def resolve(db, name="Jane Doe", training_path="PRESCHOOL", **kwargs):
    return resolve_student(
        db,
        name=name,
        training_path=training_path,
        path_label=kwargs.get("path_label", "Preschool CDA Training"),
        course_count=kwargs.get("course_count", 1),
        email=kwargs.get("email"),
        center=kwargs.get("center"),
    )


def count_students(db) -> int:
    return db.execute(select(func.count(Student.id))).scalar()


# ============================================================
# resolve_student
# ============================================================

def test_premier_appel_cree_l_eleve(db):
    student_id = resolve(db)
    db.commit()

    assert student_id == 1
    assert count_students(db) == 1


def test_meme_identite_retourne_le_meme_id(db):
    """Deux soumissions (nom, parcours) identiques → une seule fiche."""
    first = resolve(db, course_count=1)
    second = resolve(db, course_count=3)
    db.commit()

    assert first == second
    assert count_students(db) == 1
    assert db.get(Student, first).course_count == 3


def test_autre_parcours_cree_une_autre_fiche(db):
    pre = resolve(db, training_path="PRESCHOOL")
    inf = resolve(db, training_path="INFANT_TODDLER", path_label="Infant & Toddler CDA Training")
    db.commit()

    assert pre != inf
    assert count_students(db) == 2


def test_email_et_centre_conserves_si_nouvelle_valeur_nulle(db):
    student_id = resolve(db, email="jane@gmail.com", center="Sunrise Center")
    resolve(db, email=None, center=None)
    db.commit()

    student = db.get(Student, student_id)
    assert student.email == "jane@gmail.com"
    assert student.center == "Sunrise Center"


def test_email_et_centre_remplaces_si_nouvelle_valeur(db):
    student_id = resolve(db, email="old@gmail.com", center="Old Center")
    resolve(db, email="new@gmail.com", center="New Center")
    db.commit()

    student = db.get(Student, student_id)
    assert student.email == "new@gmail.com"
    assert student.center == "New Center"


def test_dialecte_non_supporte():
    """Un dialecte sans ON CONFLICT → StorageError, aucune requête exécutée."""
    db = MagicMock()
    db.get_bind.return_value.dialect.name = "mysql"

    with pytest.raises(StorageError, match="mysql"):
        resolve(db)
    db.execute.assert_not_called()


# ============================================================
# find_students_by_email
# ============================================================

def test_recherche_email_insensible_a_la_casse(db):
    resolve(db, email="Jane.Doe@Gmail.com")
    db.commit()

    students = find_students_by_email(db, "  jane.doe@GMAIL.com ")
    assert [s.name for s in students] == ["Jane Doe"]


def test_recherche_email_plusieurs_parcours_tries(db):
    """Un même email peut posséder une fiche par parcours, triées par parcours."""
    resolve(db, training_path="PRESCHOOL", email="jane@gmail.com")
    resolve(db, training_path="INFANT_TODDLER", email="jane@gmail.com")
    resolve(db, name="Bob Smith", email="bob@gmail.com")
    db.commit()

    students = find_students_by_email(db, "jane@gmail.com")
    assert [s.training_path for s in students] == ["INFANT_TODDLER", "PRESCHOOL"]


def test_recherche_email_inconnu_ou_vide(db):
    resolve(db, email="jane@gmail.com")
    db.commit()

    assert find_students_by_email(db, "nobody@gmail.com") == []
    assert find_students_by_email(db, "") == []


def test_recherche_email_ne_correspond_pas_partiellement(db):
    resolve(db, email="jane@gmail.com")
    db.commit()

    assert find_students_by_email(db, "ane@gmail.com") == []


# ============================================================
# deduplicate_students
# ============================================================

def seed_duplicates(db):
    """
    Jane Doe / PRESCHOOL : ids 1, 2, 3 ; 2 et 3 ont le même updated_at → 3 survit
    Jane Doe / INFANT_TODDLER : id 4 seul
    Bob Smith / PRESCHOOL : ids 5, 6 ; 5 plus récent → 5 survit
    """
    db.execute(insert(Student), [
        {"id": 1, "name": "Jane Doe", "training_path": "PRESCHOOL", "path_label": "P",
         "updated_at": datetime(2024, 1, 1)},
        {"id": 2, "name": "Jane Doe", "training_path": "PRESCHOOL", "path_label": "P",
         "updated_at": datetime(2024, 3, 1)},
        {"id": 3, "name": "Jane Doe", "training_path": "PRESCHOOL", "path_label": "P",
         "updated_at": datetime(2024, 3, 1)},
        {"id": 4, "name": "Jane Doe", "training_path": "INFANT_TODDLER", "path_label": "I",
         "updated_at": datetime(2024, 1, 1)},
        {"id": 5, "name": "Bob Smith", "training_path": "PRESCHOOL", "path_label": "P",
         "updated_at": datetime(2024, 6, 1)},
        {"id": 6, "name": "Bob Smith", "training_path": "PRESCHOOL", "path_label": "P",
         "updated_at": datetime(2024, 2, 1)},
    ])
    db.execute(insert(Certificate), [
        {"student_id": sid, "course_name": f"Course {sid}", "subject_area": "Health",
         "cert_date": date(2024, 1, sid)}
        for sid in (1, 2, 3, 4, 6)
    ])
    db.execute(insert(Package), [
        {"student_id": sid, "filename": f"pkg_{sid}.pdf", "training_path": "PRESCHOOL"}
        for sid in (1, 2, 6)
    ])
    db.commit()


def test_deduplication_garde_un_survivant_par_groupe(legacy_db):
    seed_duplicates(legacy_db)

    merged = deduplicate_students(legacy_db)

    assert merged == 3
    remaining = legacy_db.execute(select(Student.id).order_by(Student.id)).scalars().all()
    assert remaining == [3, 4, 5]


def test_deduplication_rattache_les_dependants_au_survivant(legacy_db):
    seed_duplicates(legacy_db)

    deduplicate_students(legacy_db)

    cert_owners = legacy_db.execute(
        select(Certificate.course_name, Certificate.student_id).order_by(Certificate.course_name)
    ).all()
    assert cert_owners == [
        ("Course 1", 3), ("Course 2", 3), ("Course 3", 3), ("Course 4", 4), ("Course 6", 5),
    ]
    package_owners = legacy_db.execute(
        select(Package.filename, Package.student_id).order_by(Package.filename)
    ).all()
    assert package_owners == [("pkg_1.pdf", 3), ("pkg_2.pdf", 3), ("pkg_6.pdf", 5)]


def test_deduplication_pose_l_index_et_reexecution_sans_effet(legacy_db):
    seed_duplicates(legacy_db)
    deduplicate_students(legacy_db)

    assert deduplicate_students(legacy_db) == 0
    # L'upsert s'appuie désormais sur l'index unique
    assert resolve(legacy_db, name="Jane Doe", training_path="PRESCHOOL") == 3
    legacy_db.commit()
    assert count_students(legacy_db) == 3


def test_deduplication_base_sans_doublon(legacy_db):
    legacy_db.execute(insert(Student), [
        {"name": "Jane Doe", "training_path": "PRESCHOOL", "path_label": "P"},
    ])
    legacy_db.commit()

    assert deduplicate_students(legacy_db) == 0
    assert count_students(legacy_db) == 1


def test_deduplication_noop_sur_base_recente(db):
    """Base créée avec l'index : aucune requête de fusion."""
    resolve(db)
    db.commit()

    assert deduplicate_students(db) == 0
    assert count_students(db) == 1

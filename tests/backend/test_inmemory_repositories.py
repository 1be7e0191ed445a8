from src.rpm_backend.domain.models.user import ApprovalStatus, UserRole
from src.rpm_backend.infra.db import inmemory as repos


def test_patient_reads_are_snapshots(seed):
    inst = seed.institution()
    clinician = seed.user(UserRole.CLINICIAN, inst.id)
    patient = seed.patient(inst.id)

    before = repos.patient_repository.get(patient.id)
    assert repos.patient_repository.assign_if_unassigned(patient.id, clinician.id) == 1

    assert before.assigned_clinician_id is None
    assert repos.patient_repository.get(patient.id).assigned_clinician_id == clinician.id


def test_editing_a_read_institution_needs_a_save(seed):
    inst = seed.institution("Original")

    copy = repos.institution_repository.get(inst.id)
    copy.name = "Changed"
    assert repos.institution_repository.get(inst.id).name == "Original"


def test_users_are_replaced_whole_on_save(seed):
    inst = seed.institution()
    clinician = seed.user(UserRole.CLINICIAN, inst.id, approval_status=ApprovalStatus.PENDING)

    earlier = repos.user_repository.get(clinician.id)
    repos.user_repository.save(earlier.model_copy(update={"approval_status": ApprovalStatus.APPROVED}))

    assert earlier.approval_status == ApprovalStatus.PENDING
    assert repos.user_repository.get(clinician.id).approval_status == ApprovalStatus.APPROVED

from typing import Optional

from perfstore.database import Store
from perfstore.errors import InvalidInput
from perfstore.models.summary import Summary
from perfstore.repositories.employees import EmployeeRepository
from perfstore.repositories.summaries import SummaryRepository
from perfstore.schemas.analytics import EmployeePerformance
from perfstore.schemas.summary import GeneratedSummary
from perfstore.services.analytics import employee_performance

CLOSING = (
    "Rekomendasikan tindak lanjut berupa sesi umpan balik terjadwal, pemantauan target triwulanan, "
    "serta dukungan pelatihan yang relevan agar progres dapat diakselerasi."
)


def _overall(average: float) -> str:
    if average >= 3.5:
        return ("Secara keseluruhan performa berada pada kategori sangat baik dan konsisten "
                "di atas ekspektasi organisasi.")
    if average >= 3.0:
        return ("Secara keseluruhan performa berada pada kategori baik dengan hasil yang stabil "
                "dan memenuhi target utama.")
    if average >= 2.5:
        return ("Rata-rata skor menunjukkan performa cukup dengan beberapa area yang masih "
                "memerlukan peningkatan.")
    return ("Performa saat ini berada di bawah target organisasi sehingga dibutuhkan rencana "
            "pengembangan terstruktur.")


def build_summary(performance: EmployeePerformance) -> str:
    """Compose the Indonesian narrative shown on the employee report."""
    employee = performance.employee
    average = performance.average_score

    if employee.jabatan and employee.sub_jabatan:
        role = f"berperan sebagai {employee.jabatan} ({employee.sub_jabatan})"
    elif employee.jabatan:
        role = f"berperan sebagai {employee.jabatan}"
    else:
        role = "berperan sebagai karyawan"
    nip = f" dengan NIP {employee.nip}" if employee.nip else ""
    intro = (
        f"{employee.name} saat ini {role}{nip}. Rata-rata pencapaian dari {len(performance.scores)} "
        f"kompetensi yang dinilai adalah {average:.2f}."
    )

    if performance.strengths:
        strengths = f"Kekuatan utama saat ini mencakup {', '.join(performance.strengths)}."
    else:
        strengths = "Belum ada kompetensi dengan skor numerik tercatat sebagai kekuatan utama."
    if performance.gaps:
        gaps = f"Area yang memerlukan perhatian lanjutan meliputi {', '.join(performance.gaps)}."
    else:
        gaps = "Tidak ada area pengembangan yang tercatat karena nilai numerik belum lengkap."

    rated = sorted(
        ((item.competency.name, item.score.numeric_value)
         for item in performance.scores if item.score.numeric_value is not None),
        key=lambda pair: pair[1],
        reverse=True,
    )
    if rated and rated[0][0] != rated[-1][0]:
        (top, top_value), (low, low_value) = rated[0], rated[-1]
        highlight = (
            f"Skor tertinggi berada pada kompetensi {top} dengan nilai {top_value:.2f}, "
            f"sementara skor terendah tercatat pada {low} dengan nilai {low_value:.2f}."
        )
    elif rated:
        highlight = f"Kompetensi dengan capaian tertinggi adalah {rated[0][0]} dengan nilai {rated[0][1]:.2f}."
    else:
        highlight = "Belum tersedia skor numerik untuk mendeskripsikan capaian kompetensi secara detail."

    return "\n\n".join([intro, _overall(average), strengths, gaps, highlight, CLOSING])


async def generate_employee_summary(store: Store, dataset_id: int, employee_id: int) -> GeneratedSummary:
    performance = await employee_performance(store, dataset_id, employee_id)
    return GeneratedSummary(content=build_summary(performance))


async def get_employee_summary(store: Store, employee_id: int) -> Optional[Summary]:
    await EmployeeRepository(store).get(employee_id)
    return await SummaryRepository(store).get_for_employee(employee_id)


async def save_employee_summary(store: Store, employee_id: int, content: str) -> Summary:
    content = content.strip()
    if not content:
        raise InvalidInput("Summary content cannot be empty")
    await EmployeeRepository(store).get(employee_id)
    return await SummaryRepository(store).save(employee_id, content)

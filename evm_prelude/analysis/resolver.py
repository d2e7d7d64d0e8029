"""Turn the interpreter's recorded origins into a definitive patch plan."""
import dataclasses
from typing import List, Set

import structlog

from ..core.errors import UnsupportedProgramError
from ..core.sites import CodeCopySite, JumpOrigin, JumpSite
from .session import AnalysisSession

logger = structlog.get_logger()


@dataclasses.dataclass
class Resolution:
    """Every jump and code-copy site, each tied to the PUSH(es) that feed it."""

    jumps: List[JumpSite]
    codecopies: List[CodeCopySite]

    @property
    def jump_origins(self) -> Set[int]:
        return {o.pc for site in self.jumps for o in site.origins}

    @property
    def codecopy_origins(self) -> Set[int]:
        return {site.origin_pc for site in self.codecopies}


def rescue_static_jumps(session: AnalysisSession) -> int:
    """
    Resolve unresolved jumps that sit directly behind a PUSH.

    Covers plain ``PUSH dest; JUMP`` pairs in code the interpreter never
    reached. Returns how many sites were rescued.
    """
    program = session.program
    rescued = 0
    for site in session.jump_sites.values():
        if site.resolved:
            continue
        prior = program.prior(program.index_of[site.pc])
        if prior is None or not prior.is_push:
            continue

        destination = prior.value
        target = program.at(destination)
        if target is None or target.mnemonic != "JUMPDEST":
            raise UnsupportedProgramError("jump does not target a JUMPDEST", pc=site.pc)
        site.record(JumpOrigin(prior.pc, duplicated=False, rescued=True), destination)
        rescued += 1
        logger.debug("Rescued static jump", jump_pc=site.pc, origin_pc=prior.pc)
    return rescued


def _check_jump(site: JumpSite) -> None:
    if not site.resolved:
        logger.warning("Unresolved jump", jump_pc=site.pc, mnemonic=site.mnemonic)
        raise UnsupportedProgramError(
            "cannot assign a specific push to each jump", pc=site.pc
        )
    for origin in site.origins:
        if origin.pc is None:
            raise UnsupportedProgramError(
                "jump target is computed rather than pushed", pc=site.pc
            )
        if origin.duplicated:
            raise UnsupportedProgramError(
                f"jump target pushed at {origin.pc:#x} is duplicated", pc=site.pc
            )


def _check_codecopy(site: CodeCopySite) -> None:
    if site.problem:
        logger.warning("Codecopy offset not tied to one push", codecopy_pc=site.pc)
        raise UnsupportedProgramError(
            "codecopy offset is computed or produced by more than one push", pc=site.pc
        )
    if not site.resolved:
        logger.warning("Unresolved codecopy offset", codecopy_pc=site.pc)
        raise UnsupportedProgramError("cannot adjust problematic codecopy offset", pc=site.pc)
    if site.duplicated:
        raise UnsupportedProgramError(
            f"codecopy offset pushed at {site.origin_pc:#x} is duplicated", pc=site.pc
        )


def resolve(session: AnalysisSession) -> Resolution:
    """Run the rescue pass, then insist every site has a single-use PUSH origin."""
    rescued = rescue_static_jumps(session)

    jumps = sorted(session.jump_sites.values(), key=lambda s: s.pc)
    codecopies = sorted(session.codecopy_sites.values(), key=lambda s: s.pc)

    for site in jumps:
        logger.debug(
            "Jump site",
            jump_pc=site.pc,
            mnemonic=site.mnemonic,
            origins=sorted(o.pc for o in site.origins if o.pc is not None),
            destinations=sorted(site.destinations),
        )
    for site in codecopies:
        logger.debug("Codecopy site", codecopy_pc=site.pc, origin_pc=site.origin_pc)

    for site in jumps:
        _check_jump(site)
    for site in codecopies:
        _check_codecopy(site)

    logger.info(
        "Resolved patch sites",
        jumps=len(jumps),
        rescued=rescued,
        codecopies=len(codecopies),
    )
    return Resolution(jumps, codecopies)
